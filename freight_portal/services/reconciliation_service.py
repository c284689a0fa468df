from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from freight_portal.services.aggregation_service import (
    DestinationTotals,
    RequestTotals,
    fold_destination_totals,
    fold_request_totals,
)
from freight_portal.services.dimension_math_service import volumetric_weight_matches
from freight_portal.services.repositories import QuoteRepositories

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GraphIssue:
    kind: str
    entity_id: str
    detail: str


@dataclass
class GraphAuditReport:
    issues: list[GraphIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues

    def add(self, kind: str, entity_id: str, detail: str) -> None:
        self.issues.append(GraphIssue(kind=kind, entity_id=entity_id, detail=detail))

    def kinds(self) -> set[str]:
        return {issue.kind for issue in self.issues}


def _totals_differ(stored: tuple[float, ...], fresh: tuple[float, ...]) -> bool:
    return any(not math.isclose(a, b, rel_tol=1e-9, abs_tol=1e-9) for a, b in zip(stored, fresh))


async def audit_quote_graph(repos: QuoteRepositories) -> GraphAuditReport:
    """Report referential and arithmetic drift across the quote graph without repairing anything."""
    requests = await repos.quote_requests.list()
    configs = await repos.carton_configs.list()
    destinations = await repos.destinations.list()
    assignments = await repos.assignments.list()

    report = GraphAuditReport()
    request_ids = {row.id for row in requests}
    configs_by_id = {row.id: row for row in configs}
    destinations_by_id = {row.id: row for row in destinations}

    for config in configs:
        if config.quote_request_id not in request_ids:
            report.add('orphaned_configuration', config.id, f'quote request {config.quote_request_id} is missing')
        if not volumetric_weight_matches(config, tolerance=1e-6):
            report.add('volumetric_weight_drift', config.id, 'volumetric weight disagrees with carton dimensions')

    for destination in destinations:
        if destination.quote_request_id not in request_ids:
            report.add('orphaned_destination', destination.id, f'quote request {destination.quote_request_id} is missing')

    for assignment in assignments:
        destination = destinations_by_id.get(assignment.destination_id)
        config = configs_by_id.get(assignment.carton_config_id)
        if destination is None:
            report.add('dangling_assignment', assignment.id, f'destination {assignment.destination_id} is missing')
        if config is None:
            report.add('dangling_assignment', assignment.id, f'carton configuration {assignment.carton_config_id} is missing')
        if destination is not None and config is not None and destination.quote_request_id != config.quote_request_id:
            report.add(
                'cross_request_assignment',
                assignment.id,
                f'destination belongs to {destination.quote_request_id}, configuration to {config.quote_request_id}',
            )

    for destination in destinations:
        fresh: DestinationTotals = fold_destination_totals(
            (row for row in assignments if row.destination_id == destination.id),
            configs_by_id,
        )
        stored = (destination.total_cartons, destination.gross_weight, destination.volumetric_weight, destination.chargeable_weight)
        if _totals_differ(stored, (fresh.total_cartons, fresh.gross_weight, fresh.volumetric_weight, fresh.chargeable_weight)):
            report.add('stale_destination_totals', destination.id, f'stored {stored}, expected {fresh}')

    for request in requests:
        fresh_request: RequestTotals = fold_request_totals(row for row in destinations if row.quote_request_id == request.id)
        stored = (
            request.total_carton_count,
            request.total_gross_weight,
            request.total_volumetric_weight,
            request.total_chargeable_weight,
            request.total_cbm,
        )
        expected = (
            fresh_request.total_carton_count,
            fresh_request.total_gross_weight,
            fresh_request.total_volumetric_weight,
            fresh_request.total_chargeable_weight,
            fresh_request.total_cbm,
        )
        if _totals_differ(stored, expected):
            report.add('stale_request_totals', request.id, f'stored {stored}, expected {expected}')

    if not report.ok:
        logger.warning('Quote graph audit found %d issue(s)', len(report.issues), extra={'issues': len(report.issues)})
    return report
