from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from freight_portal.auth import Principal, Role, get_current_principal, require_role
from freight_portal.dependencies import get_repositories
from freight_portal.records import SupplierDraft
from freight_portal.services.repositories import QuoteRepositories
from freight_portal.services.supplier_service import create_supplier, get_supplier, list_suppliers, update_supplier

router = APIRouter(prefix='/suppliers', tags=['suppliers'])
staff_access = require_role(Role.ADMIN, Role.STAFF)


@router.get('')
async def suppliers_index(
    principal: Principal = Depends(get_current_principal),
    repos: QuoteRepositories = Depends(get_repositories),
):
    return [supplier.to_record() for supplier in await list_suppliers(repos)]


@router.get('/{supplier_id}')
async def supplier_detail(
    supplier_id: str,
    principal: Principal = Depends(get_current_principal),
    repos: QuoteRepositories = Depends(get_repositories),
):
    supplier = await get_supplier(repos, supplier_id)
    if supplier is None:
        raise HTTPException(status_code=404, detail='Supplier not found')
    return supplier.to_record()


@router.post('', status_code=201)
async def supplier_create(
    draft: SupplierDraft,
    principal: Principal = Depends(staff_access),
    repos: QuoteRepositories = Depends(get_repositories),
):
    try:
        supplier = await create_supplier(repos, draft=draft)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return supplier.to_record()


@router.patch('/{supplier_id}')
async def supplier_update(
    supplier_id: str,
    changes: dict[str, Any] = Body(...),
    principal: Principal = Depends(staff_access),
    repos: QuoteRepositories = Depends(get_repositories),
):
    try:
        supplier = await update_supplier(repos, supplier_id, changes)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if supplier is None:
        raise HTTPException(status_code=404, detail='Supplier not found')
    return supplier.to_record()
