from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import asdict
from typing import Any

from freight_portal.errors import ReferentialInconsistencyError
from freight_portal.records import (
    AssignmentSpec,
    CartonAssignment,
    CartonConfigDraft,
    CartonConfiguration,
    DestinationDraft,
    QuoteDestination,
    QuoteRequest,
    QuoteRequestDetail,
    QuoteRequestDraft,
)
from freight_portal.services.aggregation_service import (
    apply_destination_totals,
    apply_request_totals,
    fold_destination_totals,
    fold_request_totals,
    recompute_destination_totals,
)
from freight_portal.services.repositories import QuoteRepositories

logger = logging.getLogger(__name__)


def _validate_assignment_specs(
    specs: Sequence[AssignmentSpec],
    *,
    destination_count: int,
    config_count: int,
) -> None:
    for position, spec in enumerate(specs):
        if not 0 <= spec.destination_index < destination_count:
            raise ReferentialInconsistencyError(
                f'Assignment {position} points at destination {spec.destination_index}; '
                f'{destination_count} destination(s) were supplied'
            )
        if not 0 <= spec.config_index < config_count:
            raise ReferentialInconsistencyError(
                f'Assignment {position} points at carton configuration {spec.config_index}; '
                f'{config_count} configuration(s) were supplied'
            )
        if spec.quantity < 0:
            raise ValueError(f'Assignment {position} quantity cannot be negative')


async def create_quote_request(
    repos: QuoteRepositories,
    *,
    request: QuoteRequestDraft,
    destinations: Sequence[DestinationDraft],
    carton_configs: Sequence[CartonConfigDraft],
    assignments: Sequence[AssignmentSpec],
) -> QuoteRequestDetail:
    """
    Create a quote request together with its carton configurations, destinations
    and carton assignments.

    Every draft is validated before the first write. Collections are written
    children first (configurations, destinations, assignments) and the request
    last, so a reader never sees a request whose children are missing. There is
    no rollback: a crash between writes leaves orphaned children behind, which
    `audit_quote_graph` reports.
    """
    request.validate()
    for config in carton_configs:
        config.validate()
    _validate_assignment_specs(assignments, destination_count=len(destinations), config_count=len(carton_configs))

    now = repos.timestamp()
    request_id = await repos.ids.allocate('qr')

    saved_configs = [
        CartonConfiguration(
            id=await repos.ids.allocate('cc'),
            quote_request_id=request_id,
            created_at=now,
            **asdict(config),
        )
        for config in carton_configs
    ]
    saved_destinations = [
        QuoteDestination(
            id=await repos.ids.allocate('dest'),
            quote_request_id=request_id,
            display_order=position,
            created_at=now,
            updated_at=now,
            **asdict(destination),
        )
        for position, destination in enumerate(destinations)
    ]
    saved_assignments = [
        CartonAssignment(
            id=await repos.ids.allocate('ca'),
            destination_id=saved_destinations[spec.destination_index].id,
            carton_config_id=saved_configs[spec.config_index].id,
            quantity=spec.quantity,
            created_at=now,
        )
        for spec in assignments
    ]

    configs_by_id = {config.id: config for config in saved_configs}
    saved_destinations = [
        apply_destination_totals(
            destination,
            fold_destination_totals(
                (row for row in saved_assignments if row.destination_id == destination.id),
                configs_by_id,
            ),
        )
        for destination in saved_destinations
    ]
    saved_request = apply_request_totals(
        QuoteRequest(id=request_id, created_at=now, updated_at=now, **asdict(request)),
        fold_request_totals(saved_destinations),
    )

    await repos.carton_configs.append(saved_configs)
    await repos.destinations.append(saved_destinations)
    await repos.assignments.append(saved_assignments)
    await repos.quote_requests.append([saved_request])

    logger.info(
        'Quote request created with %d destination(s), %d configuration(s), %d assignment(s)',
        len(saved_destinations),
        len(saved_configs),
        len(saved_assignments),
        extra={'request_id': request_id},
    )
    return QuoteRequestDetail(
        request=saved_request,
        destinations=tuple(saved_destinations),
        carton_configurations=tuple(saved_configs),
    )


def _attach(
    request: QuoteRequest,
    destinations: Sequence[QuoteDestination],
    configs: Sequence[CartonConfiguration],
) -> QuoteRequestDetail:
    return QuoteRequestDetail(
        request=request,
        destinations=tuple(
            sorted(
                (row for row in destinations if row.quote_request_id == request.id),
                key=lambda row: row.display_order,
            )
        ),
        carton_configurations=tuple(row for row in configs if row.quote_request_id == request.id),
    )


async def list_quote_requests(repos: QuoteRepositories) -> list[QuoteRequestDetail]:
    # In-memory join, O(requests x destinations); fine for a few hundred open requests.
    requests = await repos.quote_requests.list()
    destinations = await repos.destinations.list()
    configs = await repos.carton_configs.list()
    return [_attach(request, destinations, configs) for request in requests]


async def get_quote_request(repos: QuoteRepositories, request_id: str) -> QuoteRequestDetail | None:
    for detail in await list_quote_requests(repos):
        if detail.id == request_id:
            return detail
    return None


async def list_quote_requests_for_customer(repos: QuoteRepositories, customer_id: str) -> list[QuoteRequestDetail]:
    return [detail for detail in await list_quote_requests(repos) if detail.request.customer_id == customer_id]


async def update_quote_request(
    repos: QuoteRepositories,
    request_id: str,
    changes: Mapping[str, Any],
) -> QuoteRequest | None:
    requests = await repos.quote_requests.list()
    for index, existing in enumerate(requests):
        if existing.id != request_id:
            continue
        updated = existing.with_changes(changes, updated_at=repos.timestamp())
        requests[index] = updated
        await repos.quote_requests.replace_all(requests)
        return updated
    return None


async def update_destination(
    repos: QuoteRepositories,
    destination_id: str,
    changes: Mapping[str, Any],
) -> QuoteDestination | None:
    destinations = await repos.destinations.list()
    for index, existing in enumerate(destinations):
        if existing.id != destination_id:
            continue
        updated = existing.with_changes(changes, updated_at=repos.timestamp())
        destinations[index] = updated
        await repos.destinations.replace_all(destinations)
        return updated
    return None


async def list_assignments_for_destination(repos: QuoteRepositories, destination_id: str) -> list[CartonAssignment]:
    return [row for row in await repos.assignments.list() if row.destination_id == destination_id]


async def add_assignment(
    repos: QuoteRepositories,
    *,
    destination_id: str,
    carton_config_id: str,
    quantity: int,
) -> CartonAssignment:
    if quantity < 0:
        raise ValueError('Assignment quantity cannot be negative')
    destination = await repos.destinations.get(destination_id)
    if destination is None:
        raise ReferentialInconsistencyError(f'Destination {destination_id} does not exist')
    config = await repos.carton_configs.get(carton_config_id)
    if config is None:
        raise ReferentialInconsistencyError(f'Carton configuration {carton_config_id} does not exist')
    if config.quote_request_id != destination.quote_request_id:
        raise ReferentialInconsistencyError(
            f'Carton configuration {carton_config_id} belongs to quote request {config.quote_request_id}, '
            f'destination {destination_id} to {destination.quote_request_id}'
        )

    assignment = CartonAssignment(
        id=await repos.ids.allocate('ca'),
        destination_id=destination_id,
        carton_config_id=carton_config_id,
        quantity=quantity,
        created_at=repos.timestamp(),
    )
    await repos.assignments.append([assignment])
    await recompute_destination_totals(repos, destination_id)
    return assignment


async def set_assignment_quantity(repos: QuoteRepositories, assignment_id: str, quantity: int) -> CartonAssignment | None:
    if quantity < 0:
        raise ValueError('Assignment quantity cannot be negative')
    assignments = await repos.assignments.list()
    for index, existing in enumerate(assignments):
        if existing.id != assignment_id:
            continue
        updated = existing.with_changes({'quantity': quantity})
        assignments[index] = updated
        await repos.assignments.replace_all(assignments)
        await recompute_destination_totals(repos, updated.destination_id)
        return updated
    return None
