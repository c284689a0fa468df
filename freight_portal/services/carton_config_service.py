from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import asdict
from typing import Any

from freight_portal.errors import ReferentialInconsistencyError
from freight_portal.records import CartonConfigDraft, CartonConfiguration
from freight_portal.services.aggregation_service import recompute_destination_totals
from freight_portal.services.repositories import QuoteRepositories

logger = logging.getLogger(__name__)


def _as_draft(config: CartonConfiguration) -> CartonConfigDraft:
    return CartonConfigDraft(
        nickname=config.nickname,
        carton_weight=config.carton_weight,
        length=config.length,
        width=config.width,
        height=config.height,
        volumetric_weight=config.volumetric_weight,
        dimension_unit=config.dimension_unit,
    )


async def list_carton_configurations(repos: QuoteRepositories) -> list[CartonConfiguration]:
    return await repos.carton_configs.list()


async def get_carton_configuration(repos: QuoteRepositories, config_id: str) -> CartonConfiguration | None:
    return await repos.carton_configs.get(config_id)


async def list_carton_configurations_for_request(repos: QuoteRepositories, request_id: str) -> list[CartonConfiguration]:
    return [row for row in await repos.carton_configs.list() if row.quote_request_id == request_id]


async def create_carton_configuration(
    repos: QuoteRepositories,
    *,
    request_id: str,
    draft: CartonConfigDraft,
) -> CartonConfiguration:
    draft.validate()
    if await repos.quote_requests.get(request_id) is None:
        raise ReferentialInconsistencyError(f'Quote request {request_id} does not exist')
    config = CartonConfiguration(
        id=await repos.ids.allocate('cc'),
        quote_request_id=request_id,
        created_at=repos.timestamp(),
        **asdict(draft),
    )
    await repos.carton_configs.append([config])
    return config


async def update_carton_configuration(
    repos: QuoteRepositories,
    config_id: str,
    changes: Mapping[str, Any],
) -> CartonConfiguration | None:
    """Apply field changes, then refold every destination that ships this configuration."""
    configs = await repos.carton_configs.list()
    for index, existing in enumerate(configs):
        if existing.id != config_id:
            continue
        updated = existing.with_changes(changes)
        _as_draft(updated).validate()
        configs[index] = updated
        await repos.carton_configs.replace_all(configs)

        affected = sorted({row.destination_id for row in await repos.assignments.list() if row.carton_config_id == config_id})
        for destination_id in affected:
            await recompute_destination_totals(repos, destination_id)
        if affected:
            logger.info(
                'Carton configuration change refolded %d destination(s)',
                len(affected),
                extra={'request_id': updated.quote_request_id},
            )
        return updated
    return None
