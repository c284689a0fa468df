from __future__ import annotations

import asyncio
import itertools
import logging
import uuid
from typing import Protocol

from freight_portal.models import EntityType
from freight_portal.services.entity_store import EntityStore

logger = logging.getLogger(__name__)


class IdAllocator(Protocol):
    async def allocate(self, prefix: str) -> str: ...


class UuidIdAllocator:
    async def allocate(self, prefix: str) -> str:
        return f'{prefix}-{uuid.uuid4().hex}'


def _numeric_suffix(record_id: object) -> int | None:
    if not isinstance(record_id, str):
        return None
    _, _, tail = record_id.rpartition('-')
    return int(tail) if tail.isdigit() else None


class SequenceIdAllocator:
    """Monotonic ids shared across prefixes.

    With a `store`, the first allocation continues after the highest numeric
    suffix already stored in any collection, so a restarted process does not
    hand out ids that durable backends still hold.
    """

    def __init__(self, start: int = 1, *, store: EntityStore | None = None) -> None:
        self._start = start
        self._store = store
        self._counter: itertools.count | None = None if store is not None else itertools.count(start)
        self._lock = asyncio.Lock()

    async def resume(self) -> int:
        highest = self._start - 1
        if self._store is not None:
            for entity_type in EntityType:
                for row in await self._store.load(entity_type.value):
                    suffix = _numeric_suffix(row.get('id')) if isinstance(row, dict) else None
                    if suffix is not None and suffix > highest:
                        highest = suffix
        self._counter = itertools.count(highest + 1)
        if highest >= self._start:
            logger.info('Id sequence resumed after %d', highest)
        return highest + 1

    async def allocate(self, prefix: str) -> str:
        if self._counter is None:
            async with self._lock:
                if self._counter is None:
                    await self.resume()
        return f'{prefix}-{next(self._counter):06d}'
