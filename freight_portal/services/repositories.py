from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Generic, TypeVar

from freight_portal.models import EntityType
from freight_portal.records import (
    CartonAssignment,
    CartonConfiguration,
    Quote,
    QuoteDestination,
    QuoteRequest,
    RecordMixin,
    Supplier,
)
from freight_portal.services.entity_store import EntityStore
from freight_portal.services.id_allocator import IdAllocator, UuidIdAllocator

RecordT = TypeVar('RecordT', bound=RecordMixin)
Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


class Repository(Generic[RecordT]):
    """Typed view over one entity collection. Nothing is cached between calls."""

    def __init__(self, store: EntityStore, entity_type: EntityType, record_cls: type[RecordT]) -> None:
        self.store = store
        self.entity_type = entity_type
        self.record_cls = record_cls

    async def list(self) -> list[RecordT]:
        rows = await self.store.load(self.entity_type.value)
        return [self.record_cls.from_record(row, entity_type=self.entity_type.value) for row in rows]

    async def get(self, record_id: str) -> RecordT | None:
        for record in await self.list():
            if record.id == record_id:
                return record
        return None

    async def replace_all(self, records: Iterable[RecordT]) -> None:
        await self.store.replace(self.entity_type.value, [record.to_record() for record in records])

    async def append(self, new_records: Iterable[RecordT]) -> None:
        records = await self.list()
        records.extend(new_records)
        await self.replace_all(records)


@dataclass
class QuoteRepositories:
    """Everything the quoting services need, built once and passed down."""

    suppliers: Repository[Supplier]
    carton_configs: Repository[CartonConfiguration]
    destinations: Repository[QuoteDestination]
    assignments: Repository[CartonAssignment]
    quote_requests: Repository[QuoteRequest]
    quotes: Repository[Quote]
    ids: IdAllocator = field(default_factory=UuidIdAllocator)
    clock: Clock = _utc_now

    def timestamp(self) -> str:
        return self.clock().isoformat()


def build_repositories(store: EntityStore, *, ids: IdAllocator | None = None, clock: Clock | None = None) -> QuoteRepositories:
    return QuoteRepositories(
        suppliers=Repository(store, EntityType.SUPPLIERS, Supplier),
        carton_configs=Repository(store, EntityType.CARTON_CONFIGS, CartonConfiguration),
        destinations=Repository(store, EntityType.DESTINATIONS, QuoteDestination),
        assignments=Repository(store, EntityType.CARTON_ASSIGNMENTS, CartonAssignment),
        quote_requests=Repository(store, EntityType.QUOTE_REQUESTS, QuoteRequest),
        quotes=Repository(store, EntityType.QUOTES, Quote),
        ids=ids or UuidIdAllocator(),
        clock=clock or _utc_now,
    )
