from __future__ import annotations

import types
import typing
from collections.abc import Mapping
from dataclasses import MISSING, asdict, dataclass, fields, replace
from functools import lru_cache
from typing import Any

from freight_portal.errors import SerializationError
from freight_portal.models import CostKind, DimensionUnit, QuoteRequestStatus, QuoteStatus, RegulatedGoods

READONLY_FIELDS = frozenset({'id', 'created_at', 'updated_at'})


@lru_cache(maxsize=None)
def _field_hints(cls: type) -> dict[str, Any]:
    return typing.get_type_hints(cls)


def _coerce_value(name: str, value: Any, hint: Any) -> Any:
    """Check a plain JSON value against the field's declared scalar type."""
    optional = False
    if typing.get_origin(hint) in (typing.Union, types.UnionType):
        args = [arg for arg in typing.get_args(hint) if arg is not type(None)]
        optional = len(args) < len(typing.get_args(hint))
        hint = args[0] if len(args) == 1 else Any
    if value is None:
        if optional:
            return None
        raise ValueError(f'{name} cannot be null')
    if hint is bool:
        if not isinstance(value, bool):
            raise ValueError(f'{name} must be true or false')
        return value
    if hint is int:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or int(value) != value:
            raise ValueError(f'{name} must be a whole number')
        return int(value)
    if hint is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f'{name} must be a number')
        return float(value)
    if hint is str and not isinstance(value, str):
        raise ValueError(f'{name} must be a string')
    return value


class RecordMixin:
    """JSON record codec shared by every persisted entity.

    `converters` maps a field name to a callable that turns its JSON value back
    into the Python type. `with_changes` refuses `readonly_fields`; when
    `mutable_fields` is set, only those names may change.
    """

    converters: dict = {}
    readonly_fields = READONLY_FIELDS
    mutable_fields: frozenset | None = None

    def to_record(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_record(cls, data: Any, *, entity_type: str | None = None):
        label = entity_type or cls.__name__
        if not isinstance(data, Mapping):
            raise SerializationError(label, f'expected an object, got {type(data).__name__}')
        values: dict[str, Any] = {}
        for item in fields(cls):
            if item.name in data:
                value = data[item.name]
                converter = cls.converters.get(item.name)
                if converter is not None and value is not None:
                    try:
                        value = converter(value)
                    except (KeyError, TypeError, ValueError) as exc:
                        raise SerializationError(label, f'bad {item.name!r} on {data.get("id")!r}: {exc}') from exc
                values[item.name] = value
            elif item.default is MISSING and item.default_factory is MISSING:
                raise SerializationError(label, f'record {data.get("id")!r} is missing {item.name!r}')
        return cls(**values)

    def with_changes(self, changes: Mapping[str, Any], *, updated_at: str | None = None):
        names = {item.name for item in fields(self)}
        allowed = self.mutable_fields if self.mutable_fields is not None else names - self.readonly_fields
        rejected = sorted(set(changes) - allowed)
        if rejected:
            raise ValueError(f'Cannot update field(s): {", ".join(rejected)}')
        hints = _field_hints(type(self))
        coerced: dict[str, Any] = {}
        for name, value in changes.items():
            converter = self.converters.get(name)
            if converter is None or value is None:
                coerced[name] = _coerce_value(name, value, hints[name])
                continue
            try:
                coerced[name] = converter(value)
            except (KeyError, TypeError, ValueError) as exc:
                raise ValueError(f'Invalid {name}: {exc}') from exc
        if updated_at is not None and 'updated_at' in names:
            coerced['updated_at'] = updated_at
        return replace(self, **coerced)


def _require_text(value: str | None, label: str) -> None:
    if value is None or not str(value).strip():
        raise ValueError(f'{label} is required')


def _require_non_negative(value: float, label: str) -> None:
    if value < 0:
        raise ValueError(f'{label} cannot be negative')


@dataclass(frozen=True)
class SupplierDraft:
    name: str
    address: str
    city: str | None = None
    country: str | None = None
    contact_name: str | None = None
    contact_phone: str | None = None
    contact_email: str | None = None

    def validate(self) -> None:
        _require_text(self.name, 'Supplier name')
        _require_text(self.address, 'Supplier address')


@dataclass(frozen=True)
class Supplier(RecordMixin):
    id: str
    name: str
    address: str
    city: str | None = None
    country: str | None = None
    contact_name: str | None = None
    contact_phone: str | None = None
    contact_email: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class CartonConfigDraft:
    nickname: str
    carton_weight: float
    length: float
    width: float
    height: float
    volumetric_weight: float
    dimension_unit: DimensionUnit = DimensionUnit.CM

    def validate(self) -> None:
        _require_text(self.nickname, 'Carton nickname')
        for label in ('carton_weight', 'length', 'width', 'height', 'volumetric_weight'):
            _require_non_negative(getattr(self, label), label)


@dataclass(frozen=True)
class CartonConfiguration(RecordMixin):
    id: str
    quote_request_id: str
    nickname: str
    carton_weight: float
    length: float
    width: float
    height: float
    dimension_unit: DimensionUnit
    volumetric_weight: float
    created_at: str | None = None

    converters = {'dimension_unit': DimensionUnit}
    readonly_fields = READONLY_FIELDS | {'quote_request_id'}


@dataclass(frozen=True)
class DestinationDraft:
    is_amazon: bool = False
    fba_warehouse_code: str | None = None
    fba_warehouse_name: str | None = None
    warehouse_address: str | None = None
    warehouse_city: str | None = None
    warehouse_state: str | None = None
    warehouse_zip: str | None = None
    custom_address: str | None = None


@dataclass(frozen=True)
class QuoteDestination(RecordMixin):
    id: str
    quote_request_id: str
    is_amazon: bool = False
    fba_warehouse_code: str | None = None
    fba_warehouse_name: str | None = None
    warehouse_address: str | None = None
    warehouse_city: str | None = None
    warehouse_state: str | None = None
    warehouse_zip: str | None = None
    custom_address: str | None = None
    total_cartons: int = 0
    gross_weight: float = 0.0
    volumetric_weight: float = 0.0
    chargeable_weight: float = 0.0
    display_order: int = 0
    created_at: str | None = None
    updated_at: str | None = None

    # Totals belong to the recompute cascade.
    mutable_fields = frozenset(field.name for field in fields(DestinationDraft))


@dataclass(frozen=True)
class AssignmentSpec:
    """Binds a quantity of configs[config_index] to destinations[destination_index] before ids exist."""

    destination_index: int
    config_index: int
    quantity: int


@dataclass(frozen=True)
class CartonAssignment(RecordMixin):
    id: str
    destination_id: str
    carton_config_id: str
    quantity: int
    created_at: str | None = None


@dataclass(frozen=True)
class QuoteRequestDraft:
    customer_id: str
    service_type: str
    requested_date: str
    due_by: str
    supplier_id: str | None = None
    supplier_name: str | None = None
    supplier_address: str | None = None
    supplier_city: str | None = None
    supplier_country: str | None = None
    supplier_contact_name: str | None = None
    supplier_contact_phone: str | None = None
    shipment_date: str | None = None
    product_description: str | None = None
    competitor_asin: str | None = None
    regulated_goods: RegulatedGoods | None = None
    dimension_unit: DimensionUnit = DimensionUnit.CM
    special_instructions: str | None = None
    status: QuoteRequestStatus = QuoteRequestStatus.AWAITING_QUOTE

    def validate(self) -> None:
        _require_text(self.customer_id, 'Customer id')
        _require_text(self.service_type, 'Service type')
        _require_text(self.requested_date, 'Requested date')
        _require_text(self.due_by, 'Due-by date')

    def with_supplier(self, supplier: Supplier) -> QuoteRequestDraft:
        return replace(
            self,
            supplier_id=supplier.id,
            supplier_name=supplier.name,
            supplier_address=supplier.address,
            supplier_city=supplier.city,
            supplier_country=supplier.country,
            supplier_contact_name=supplier.contact_name,
            supplier_contact_phone=supplier.contact_phone,
        )


@dataclass(frozen=True)
class QuoteRequest(RecordMixin):
    id: str
    customer_id: str
    service_type: str
    requested_date: str
    due_by: str
    supplier_id: str | None = None
    supplier_name: str | None = None
    supplier_address: str | None = None
    supplier_city: str | None = None
    supplier_country: str | None = None
    supplier_contact_name: str | None = None
    supplier_contact_phone: str | None = None
    shipment_date: str | None = None
    product_description: str | None = None
    competitor_asin: str | None = None
    regulated_goods: RegulatedGoods | None = None
    total_carton_count: int = 0
    total_gross_weight: float = 0.0
    total_volumetric_weight: float = 0.0
    total_chargeable_weight: float = 0.0
    total_cbm: float = 0.0
    dimension_unit: DimensionUnit = DimensionUnit.CM
    special_instructions: str | None = None
    status: QuoteRequestStatus = QuoteRequestStatus.AWAITING_QUOTE
    created_at: str | None = None
    updated_at: str | None = None

    converters = {
        'regulated_goods': RegulatedGoods,
        'dimension_unit': DimensionUnit,
        'status': QuoteRequestStatus,
    }
    mutable_fields = frozenset({'status'})


@dataclass(frozen=True)
class QuoteRequestDetail:
    request: QuoteRequest
    destinations: tuple[QuoteDestination, ...]
    carton_configurations: tuple[CartonConfiguration, ...]

    @property
    def id(self) -> str:
        return self.request.id

    def to_record(self) -> dict[str, Any]:
        record = self.request.to_record()
        record['destinations'] = [destination.to_record() for destination in self.destinations]
        record['carton_configurations'] = [config.to_record() for config in self.carton_configurations]
        return record


@dataclass(frozen=True)
class CostLine:
    kind: CostKind
    amount: float
    destination_id: str | None = None
    description: str | None = None


def _parse_cost_line(value: Any) -> CostLine:
    if isinstance(value, CostLine):
        return value
    if not isinstance(value, Mapping) or 'kind' not in value or 'amount' not in value:
        raise ValueError('Cost lines need a kind and an amount')
    amount = value['amount']
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise ValueError('Cost line amount must be a number')
    return CostLine(
        kind=CostKind(value['kind']),
        amount=float(amount),
        destination_id=value.get('destination_id'),
        description=value.get('description'),
    )


def _parse_cost_lines(values: Any) -> tuple[CostLine, ...]:
    return tuple(_parse_cost_line(value) for value in values)


@dataclass(frozen=True)
class QuoteDraft:
    request_id: str
    customer_id: str
    valid_until: str
    staff_id: str | None = None
    freight_cost: float = 0.0
    insurance_cost: float = 0.0
    customs_clearance_fee: float = 0.0
    fuel_surcharge: float = 0.0
    handling_fee: float = 0.0
    documentation_fee: float = 0.0
    cost_lines: tuple[CostLine, ...] = ()
    commission_rate_per_kg: float | None = None
    total_commission: float = 0.0
    subtotal: float = 0.0
    tax_amount: float = 0.0
    total_cost: float = 0.0
    payment_terms: str | None = None
    delivery_terms: str | None = None
    status: QuoteStatus = QuoteStatus.PENDING
    notes: str | None = None

    def validate(self) -> None:
        _require_text(self.request_id, 'Quote request id')
        _require_text(self.customer_id, 'Customer id')
        _require_text(self.valid_until, 'Valid-until date')


@dataclass(frozen=True)
class Quote(RecordMixin):
    id: str
    request_id: str
    customer_id: str
    valid_until: str
    staff_id: str | None = None
    freight_cost: float = 0.0
    insurance_cost: float = 0.0
    customs_clearance_fee: float = 0.0
    fuel_surcharge: float = 0.0
    handling_fee: float = 0.0
    documentation_fee: float = 0.0
    cost_lines: tuple[CostLine, ...] = ()
    commission_rate_per_kg: float | None = None
    total_commission: float = 0.0
    subtotal: float = 0.0
    tax_amount: float = 0.0
    total_cost: float = 0.0
    payment_terms: str | None = None
    delivery_terms: str | None = None
    status: QuoteStatus = QuoteStatus.PENDING
    notes: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    converters = {'status': QuoteStatus, 'cost_lines': _parse_cost_lines}
    readonly_fields = READONLY_FIELDS | {'request_id', 'customer_id'}
