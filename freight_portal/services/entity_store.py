from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

from freight_portal.errors import SerializationError

logger = logging.getLogger(__name__)


class EntityStore(Protocol):
    """Whole-collection persistence keyed by entity type.

    There is no cross-type transaction: a multi-entity write is one `replace`
    per collection, and an interruption between calls can leave the graph
    referentially inconsistent. Concurrent writers to one collection race;
    the last `replace` wins.
    """

    async def load(self, entity_type: str) -> list[dict[str, Any]]: ...

    async def replace(self, entity_type: str, records: list[dict[str, Any]]) -> None: ...


class BlobEntityStore:
    """Shared plumbing for stores that keep one JSON array per collection."""

    def __init__(self, *, prefix: str = '', latency_seconds: float = 0.0) -> None:
        self.prefix = prefix
        self.latency_seconds = latency_seconds

    def key_for(self, entity_type: str) -> str:
        return f'{self.prefix}{entity_type}'

    async def _pause(self) -> None:
        # Suspension point standing in for network latency; also yields to the loop at zero.
        await asyncio.sleep(self.latency_seconds)

    @staticmethod
    def _decode(entity_type: str, raw: str | None) -> list[dict[str, Any]]:
        if raw is None:
            return []
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise SerializationError(entity_type, f'invalid JSON ({exc.msg} at position {exc.pos})') from exc
        if not isinstance(parsed, list):
            raise SerializationError(entity_type, f'expected a JSON array, got {type(parsed).__name__}')
        return parsed

    @staticmethod
    def _encode(records: list[dict[str, Any]]) -> str:
        return json.dumps(records, separators=(',', ':'))

    async def _read_blob(self, key: str) -> str | None:
        raise NotImplementedError

    async def _write_blob(self, key: str, payload: str, record_count: int) -> None:
        raise NotImplementedError

    async def load(self, entity_type: str) -> list[dict[str, Any]]:
        await self._pause()
        return self._decode(entity_type, await self._read_blob(self.key_for(entity_type)))

    async def replace(self, entity_type: str, records: list[dict[str, Any]]) -> None:
        payload = self._encode(records)
        await self._write_blob(self.key_for(entity_type), payload, len(records))
        logger.debug('Replaced collection', extra={'entity': entity_type, 'records': len(records)})
        await self._pause()


class MemoryEntityStore(BlobEntityStore):
    def __init__(self, *, prefix: str = '', latency_seconds: float = 0.0) -> None:
        super().__init__(prefix=prefix, latency_seconds=latency_seconds)
        self.blobs: dict[str, str] = {}

    async def _read_blob(self, key: str) -> str | None:
        return self.blobs.get(key)

    async def _write_blob(self, key: str, payload: str, record_count: int) -> None:
        self.blobs[key] = payload


class JsonFileEntityStore(BlobEntityStore):
    def __init__(self, directory: str | Path, *, prefix: str = '', latency_seconds: float = 0.0) -> None:
        super().__init__(prefix=prefix, latency_seconds=latency_seconds)
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        return self.directory / f'{key}.json'

    async def _read_blob(self, key: str) -> str | None:
        return await asyncio.to_thread(self._read_file, key)

    async def _write_blob(self, key: str, payload: str, record_count: int) -> None:
        await asyncio.to_thread(self._write_file, key, payload)

    def _read_file(self, key: str) -> str | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding='utf-8')

    def _write_file(self, key: str, payload: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f'.{key}.', suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as handle:
                handle.write(payload)
            os.replace(tmp_name, self.path_for(key))
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
