from __future__ import annotations

from functools import lru_cache

from freight_portal.config import settings
from freight_portal.services.entity_store import EntityStore, JsonFileEntityStore, MemoryEntityStore
from freight_portal.services.id_allocator import IdAllocator, SequenceIdAllocator, UuidIdAllocator
from freight_portal.services.repositories import QuoteRepositories, build_repositories


@lru_cache(maxsize=1)
def get_entity_store() -> EntityStore:
    backend = settings.storage_backend.strip().lower()
    if backend == 'sql':
        from freight_portal.db import get_session_factory, init_schema
        from freight_portal.services.sql_entity_store import SqlEntityStore

        init_schema()
        return SqlEntityStore(
            get_session_factory(),
            prefix=settings.storage_prefix,
            latency_seconds=settings.store_latency_seconds,
        )
    if backend == 'memory':
        return MemoryEntityStore(prefix=settings.storage_prefix, latency_seconds=settings.store_latency_seconds)
    return JsonFileEntityStore(
        settings.storage_dir,
        prefix=settings.storage_prefix,
        latency_seconds=settings.store_latency_seconds,
    )


def get_id_allocator() -> IdAllocator:
    if settings.id_strategy.strip().lower() == 'sequence':
        return SequenceIdAllocator(store=get_entity_store())
    return UuidIdAllocator()


@lru_cache(maxsize=1)
def get_repositories() -> QuoteRepositories:
    return build_repositories(get_entity_store(), ids=get_id_allocator())
