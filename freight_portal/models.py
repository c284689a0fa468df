from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import BigInteger, DateTime, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class EntityType(str, Enum):
    SUPPLIERS = 'suppliers'
    QUOTE_REQUESTS = 'quote_requests'
    CARTON_CONFIGS = 'carton_configs'
    DESTINATIONS = 'destinations'
    CARTON_ASSIGNMENTS = 'carton_assignments'
    QUOTES = 'quotes'


class DimensionUnit(str, Enum):
    CM = 'cm'
    IN = 'in'


class RegulatedGoods(str, Enum):
    FDA = 'fda'
    WOOD_BAMBOO_ANIMAL = 'wood-bamboo-animal'
    BATTERIES_HAZMAT = 'batteries-hazmat'
    CREAM_LIQUIDS_POWDERS = 'cream-liquids-powders'
    NONE = 'none'


class QuoteRequestStatus(str, Enum):
    AWAITING_QUOTE = 'Awaiting Quote'
    QUOTED = 'Quoted'
    ACCEPTED = 'Accepted'
    REJECTED = 'Rejected'


class QuoteStatus(str, Enum):
    PENDING = 'Pending'
    ACCEPTED = 'Accepted'
    REJECTED = 'Rejected'
    EXPIRED = 'Expired'


class CostKind(str, Enum):
    FREIGHT = 'freight'
    INSURANCE = 'insurance'
    CUSTOMS = 'customs'
    FUEL_SURCHARGE = 'fuel_surcharge'
    HANDLING = 'handling'
    DOCUMENTATION = 'documentation'
    DELIVERY = 'delivery'
    OTHER = 'other'


class EntityCollection(Base):
    __tablename__ = 'entity_collections'

    name: Mapped[str] = mapped_column(Text, primary_key=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False, default='[]')
    record_count: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
