from __future__ import annotations

from dataclasses import replace
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from freight_portal.auth import Principal, Role, assert_customer_scope, get_current_principal, is_staff_role, require_role
from freight_portal.dependencies import get_repositories
from freight_portal.records import QuoteDraft
from freight_portal.services.quote_service import create_quote, get_quote, list_quotes, list_quotes_for_customer, update_quote
from freight_portal.services.repositories import QuoteRepositories

router = APIRouter(prefix='/quotes', tags=['quotes'])
staff_access = require_role(Role.ADMIN, Role.STAFF)


@router.get('')
async def quotes_index(
    principal: Principal = Depends(get_current_principal),
    repos: QuoteRepositories = Depends(get_repositories),
):
    if is_staff_role(principal.role):
        quotes = await list_quotes(repos)
    else:
        quotes = await list_quotes_for_customer(repos, principal.id)
    return [quote.to_record() for quote in quotes]


@router.get('/{quote_id}')
async def quote_detail(
    quote_id: str,
    principal: Principal = Depends(get_current_principal),
    repos: QuoteRepositories = Depends(get_repositories),
):
    quote = await get_quote(repos, quote_id)
    if quote is None:
        raise HTTPException(status_code=404, detail='Quote not found')
    assert_customer_scope(principal, quote.customer_id)
    return quote.to_record()


@router.post('', status_code=201)
async def quote_create(
    draft: QuoteDraft,
    principal: Principal = Depends(staff_access),
    repos: QuoteRepositories = Depends(get_repositories),
):
    try:
        quote = await create_quote(repos, draft=replace(draft, staff_id=principal.id))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return quote.to_record()


@router.patch('/{quote_id}')
async def quote_update(
    quote_id: str,
    changes: dict[str, Any] = Body(...),
    principal: Principal = Depends(staff_access),
    repos: QuoteRepositories = Depends(get_repositories),
):
    try:
        quote = await update_quote(repos, quote_id, changes)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if quote is None:
        raise HTTPException(status_code=404, detail='Quote not found')
    return quote.to_record()
