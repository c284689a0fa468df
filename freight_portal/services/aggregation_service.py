"""
Bottom-up recomputation of derived weights.

Assignment change -> destination totals -> quote request totals. The fold
helpers are pure so the orchestrator can apply them to drafts before anything
is persisted; the async functions load, fold and persist against the store.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace

from freight_portal.records import CartonAssignment, CartonConfiguration, QuoteDestination, QuoteRequest
from freight_portal.services.repositories import QuoteRepositories

logger = logging.getLogger(__name__)

# Volumetric kilograms per cubic metre.
CBM_DIVISOR = 167


@dataclass(frozen=True)
class DestinationTotals:
    total_cartons: int = 0
    gross_weight: float = 0.0
    volumetric_weight: float = 0.0
    chargeable_weight: float = 0.0


@dataclass(frozen=True)
class RequestTotals:
    total_carton_count: int = 0
    total_gross_weight: float = 0.0
    total_volumetric_weight: float = 0.0
    total_chargeable_weight: float = 0.0
    total_cbm: float = 0.0


def fold_destination_totals(
    assignments: Iterable[CartonAssignment],
    configs_by_id: Mapping[str, CartonConfiguration],
) -> DestinationTotals:
    """Cartons count every assignment; weights only those whose configuration resolves."""
    total_cartons = 0
    gross_weight = 0.0
    volumetric_weight = 0.0
    for assignment in assignments:
        total_cartons += assignment.quantity
        config = configs_by_id.get(assignment.carton_config_id)
        if config is None:
            logger.warning(
                'Assignment %s references missing carton configuration %s; weights skipped',
                assignment.id,
                assignment.carton_config_id,
            )
            continue
        gross_weight += assignment.quantity * config.carton_weight
        volumetric_weight += assignment.quantity * config.volumetric_weight
    return DestinationTotals(
        total_cartons=total_cartons,
        gross_weight=gross_weight,
        volumetric_weight=volumetric_weight,
        chargeable_weight=max(gross_weight, volumetric_weight),
    )


def fold_request_totals(destinations: Iterable[QuoteDestination]) -> RequestTotals:
    cartons = 0
    gross_weight = 0.0
    volumetric_weight = 0.0
    chargeable_weight = 0.0
    for destination in destinations:
        cartons += destination.total_cartons
        gross_weight += destination.gross_weight
        volumetric_weight += destination.volumetric_weight
        chargeable_weight += destination.chargeable_weight
    return RequestTotals(
        total_carton_count=cartons,
        total_gross_weight=gross_weight,
        total_volumetric_weight=volumetric_weight,
        total_chargeable_weight=chargeable_weight,
        total_cbm=volumetric_weight / CBM_DIVISOR,
    )


def apply_destination_totals(destination: QuoteDestination, totals: DestinationTotals) -> QuoteDestination:
    return replace(
        destination,
        total_cartons=totals.total_cartons,
        gross_weight=totals.gross_weight,
        volumetric_weight=totals.volumetric_weight,
        chargeable_weight=totals.chargeable_weight,
    )


def apply_request_totals(request: QuoteRequest, totals: RequestTotals) -> QuoteRequest:
    return replace(
        request,
        total_carton_count=totals.total_carton_count,
        total_gross_weight=totals.total_gross_weight,
        total_volumetric_weight=totals.total_volumetric_weight,
        total_chargeable_weight=totals.total_chargeable_weight,
        total_cbm=totals.total_cbm,
    )


async def recompute_destination_totals(repos: QuoteRepositories, destination_id: str) -> QuoteDestination | None:
    """Refold one destination from its assignments, then cascade to its quote request.

    Returns None when the destination does not exist. A pass that changes
    nothing leaves the stored collection untouched, including `updated_at`.
    """
    destinations = await repos.destinations.list()
    index = next((i for i, row in enumerate(destinations) if row.id == destination_id), None)
    if index is None:
        return None

    assignments = [row for row in await repos.assignments.list() if row.destination_id == destination_id]
    configs_by_id = {row.id: row for row in await repos.carton_configs.list()}

    current = destinations[index]
    updated = apply_destination_totals(current, fold_destination_totals(assignments, configs_by_id))
    if updated != current:
        updated = replace(updated, updated_at=repos.timestamp())
        destinations[index] = updated
        await repos.destinations.replace_all(destinations)
        logger.info(
            'Destination totals recomputed',
            extra={'destination_id': destination_id, 'request_id': updated.quote_request_id},
        )

    await recompute_quote_request_totals(repos, updated.quote_request_id)
    return updated


async def recompute_quote_request_totals(repos: QuoteRepositories, request_id: str) -> QuoteRequest | None:
    requests = await repos.quote_requests.list()
    index = next((i for i, row in enumerate(requests) if row.id == request_id), None)
    if index is None:
        return None

    request_destinations = [row for row in await repos.destinations.list() if row.quote_request_id == request_id]

    current = requests[index]
    updated = apply_request_totals(current, fold_request_totals(request_destinations))
    if updated != current:
        updated = replace(updated, updated_at=repos.timestamp())
        requests[index] = updated
        await repos.quote_requests.replace_all(requests)
        logger.info('Quote request totals recomputed', extra={'request_id': request_id})
    return updated
