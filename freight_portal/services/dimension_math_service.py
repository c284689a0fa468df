from __future__ import annotations

from freight_portal.models import DimensionUnit
from freight_portal.records import CartonConfigDraft, CartonConfiguration

# Dimensional-weight divisors, one per unit the carton dimensions are entered in.
VOLUMETRIC_DIVISORS = {
    DimensionUnit.CM: 6000,
    DimensionUnit.IN: 366,
}


def compute_volumetric_weight(length: float, width: float, height: float, unit: DimensionUnit) -> float:
    if min(length, width, height) < 0:
        raise ValueError('Carton dimensions cannot be negative')
    return length * width * height / VOLUMETRIC_DIVISORS[DimensionUnit(unit)]


def build_carton_config_draft(
    *,
    nickname: str,
    carton_weight: float,
    length: float,
    width: float,
    height: float,
    dimension_unit: DimensionUnit = DimensionUnit.CM,
) -> CartonConfigDraft:
    return CartonConfigDraft(
        nickname=nickname,
        carton_weight=carton_weight,
        length=length,
        width=width,
        height=height,
        dimension_unit=DimensionUnit(dimension_unit),
        volumetric_weight=compute_volumetric_weight(length, width, height, dimension_unit),
    )


def volumetric_weight_matches(config: CartonConfigDraft | CartonConfiguration, *, tolerance: float = 1e-9) -> bool:
    expected = compute_volumetric_weight(config.length, config.width, config.height, config.dimension_unit)
    return abs(expected - config.volumetric_weight) <= tolerance
