from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import asdict
from typing import Any

from freight_portal.errors import QuoteTotalsMismatchError, ReferentialInconsistencyError
from freight_portal.models import QuoteStatus
from freight_portal.records import CostLine, Quote, QuoteDraft
from freight_portal.services.repositories import QuoteRepositories

logger = logging.getLogger(__name__)

TOTAL_TOLERANCE = 0.005


def check_quote_totals(*, subtotal: float, tax_amount: float, total_cost: float) -> None:
    expected = subtotal + tax_amount
    if abs(total_cost - expected) > TOTAL_TOLERANCE:
        raise QuoteTotalsMismatchError(
            f'Total cost {total_cost:.2f} does not equal subtotal {subtotal:.2f} + tax {tax_amount:.2f}'
        )


async def _check_cost_line_destinations(repos: QuoteRepositories, request_id: str, lines: Iterable[CostLine]) -> None:
    referenced = {line.destination_id for line in lines if line.destination_id}
    if not referenced:
        return
    known = {row.id for row in await repos.destinations.list() if row.quote_request_id == request_id}
    missing = sorted(referenced - known)
    if missing:
        raise ReferentialInconsistencyError(
            f'Cost lines reference destinations outside quote request {request_id}: {", ".join(missing)}'
        )


async def list_quotes(repos: QuoteRepositories) -> list[Quote]:
    return await repos.quotes.list()


async def get_quote(repos: QuoteRepositories, quote_id: str) -> Quote | None:
    return await repos.quotes.get(quote_id)


async def list_quotes_for_customer(repos: QuoteRepositories, customer_id: str) -> list[Quote]:
    return [row for row in await repos.quotes.list() if row.customer_id == customer_id]


async def list_quotes_for_request(repos: QuoteRepositories, request_id: str) -> list[Quote]:
    return [row for row in await repos.quotes.list() if row.request_id == request_id]


async def create_quote(repos: QuoteRepositories, *, draft: QuoteDraft) -> Quote:
    draft.validate()
    check_quote_totals(subtotal=draft.subtotal, tax_amount=draft.tax_amount, total_cost=draft.total_cost)
    if await repos.quote_requests.get(draft.request_id) is None:
        raise ReferentialInconsistencyError(f'Quote request {draft.request_id} does not exist')
    await _check_cost_line_destinations(repos, draft.request_id, draft.cost_lines)

    now = repos.timestamp()
    fields = asdict(draft)
    fields['cost_lines'] = tuple(draft.cost_lines)
    fields['status'] = QuoteStatus(draft.status)
    quote = Quote(id=await repos.ids.allocate('q'), created_at=now, updated_at=now, **fields)
    await repos.quotes.append([quote])
    logger.info('Quote created', extra={'quote_id': quote.id, 'request_id': quote.request_id})
    return quote


async def update_quote(repos: QuoteRepositories, quote_id: str, changes: Mapping[str, Any]) -> Quote | None:
    quotes = await repos.quotes.list()
    for index, existing in enumerate(quotes):
        if existing.id != quote_id:
            continue
        updated = existing.with_changes(changes, updated_at=repos.timestamp())
        check_quote_totals(subtotal=updated.subtotal, tax_amount=updated.tax_amount, total_cost=updated.total_cost)
        if 'cost_lines' in changes:
            await _check_cost_line_destinations(repos, updated.request_id, updated.cost_lines)
        quotes[index] = updated
        await repos.quotes.replace_all(quotes)
        if updated.status != existing.status:
            logger.info(
                'Quote status changed from %s to %s',
                existing.status.value,
                updated.status.value,
                extra={'quote_id': quote_id},
            )
        return updated
    return None
