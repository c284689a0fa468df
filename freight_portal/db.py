from __future__ import annotations

from functools import lru_cache

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from freight_portal.config import settings
from freight_portal.models import Base


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_engine(settings.database_url_normalized, pool_pre_ping=True)


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker[Session]:
    return sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=False)


def init_schema(engine: Engine | None = None) -> None:
    Base.metadata.create_all(engine or get_engine())
