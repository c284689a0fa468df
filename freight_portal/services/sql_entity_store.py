from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from freight_portal.models import EntityCollection
from freight_portal.services.entity_store import BlobEntityStore


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


class SqlEntityStore(BlobEntityStore):
    """One `entity_collections` row per collection; replace is a single-row upsert."""

    def __init__(self, session_factory: sessionmaker[Session], *, prefix: str = '', latency_seconds: float = 0.0) -> None:
        super().__init__(prefix=prefix, latency_seconds=latency_seconds)
        self.session_factory = session_factory

    async def _read_blob(self, key: str) -> str | None:
        return await asyncio.to_thread(self._select_payload, key)

    async def _write_blob(self, key: str, payload: str, record_count: int) -> None:
        await asyncio.to_thread(self._upsert_payload, key, payload, record_count)

    def _select_payload(self, key: str) -> str | None:
        with self.session_factory() as db:
            return db.execute(select(EntityCollection.payload).where(EntityCollection.name == key)).scalar_one_or_none()

    def _upsert_payload(self, key: str, payload: str, record_count: int) -> None:
        with self.session_factory() as db:
            row = db.execute(select(EntityCollection).where(EntityCollection.name == key)).scalar_one_or_none()
            if row is None:
                db.add(EntityCollection(name=key, payload=payload, record_count=record_count, updated_at=_now()))
            else:
                row.payload = payload
                row.record_count = record_count
                row.updated_at = _now()
            db.commit()
