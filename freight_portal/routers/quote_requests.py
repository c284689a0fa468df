from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from freight_portal.auth import Principal, Role, assert_customer_scope, get_current_principal, is_staff_role, require_role
from freight_portal.dependencies import get_repositories
from freight_portal.records import AssignmentSpec, CartonConfigDraft, DestinationDraft, QuoteRequestDraft
from freight_portal.services.carton_config_service import (
    create_carton_configuration,
    list_carton_configurations_for_request,
    update_carton_configuration,
)
from freight_portal.services.quote_request_service import (
    add_assignment,
    create_quote_request,
    get_quote_request,
    list_assignments_for_destination,
    list_quote_requests,
    list_quote_requests_for_customer,
    set_assignment_quantity,
    update_destination,
    update_quote_request,
)
from freight_portal.services.reconciliation_service import audit_quote_graph
from freight_portal.services.repositories import QuoteRepositories

router = APIRouter(prefix='/quote-requests', tags=['quote-requests'])
staff_access = require_role(Role.ADMIN, Role.STAFF)


@dataclass
class QuoteRequestSubmission:
    request: QuoteRequestDraft
    destinations: list[DestinationDraft]
    carton_configs: list[CartonConfigDraft]
    assignments: list[AssignmentSpec]


@dataclass
class AssignmentInput:
    carton_config_id: str
    quantity: int


@router.get('')
async def quote_requests_index(
    principal: Principal = Depends(get_current_principal),
    repos: QuoteRepositories = Depends(get_repositories),
):
    if is_staff_role(principal.role):
        details = await list_quote_requests(repos)
    else:
        details = await list_quote_requests_for_customer(repos, principal.id)
    return [detail.to_record() for detail in details]


@router.post('', status_code=201)
async def quote_request_create(
    submission: QuoteRequestSubmission,
    principal: Principal = Depends(get_current_principal),
    repos: QuoteRepositories = Depends(get_repositories),
):
    request_draft = submission.request
    if not is_staff_role(principal.role):
        request_draft = replace(request_draft, customer_id=principal.id)
    try:
        detail = await create_quote_request(
            repos,
            request=request_draft,
            destinations=submission.destinations,
            carton_configs=submission.carton_configs,
            assignments=submission.assignments,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return detail.to_record()


@router.get('/audit')
async def quote_graph_audit(
    principal: Principal = Depends(staff_access),
    repos: QuoteRepositories = Depends(get_repositories),
):
    report = await audit_quote_graph(repos)
    return {'ok': report.ok, 'issues': [asdict(issue) for issue in report.issues]}


@router.get('/{request_id}')
async def quote_request_detail(
    request_id: str,
    principal: Principal = Depends(get_current_principal),
    repos: QuoteRepositories = Depends(get_repositories),
):
    detail = await get_quote_request(repos, request_id)
    if detail is None:
        raise HTTPException(status_code=404, detail='Quote request not found')
    assert_customer_scope(principal, detail.request.customer_id)
    return detail.to_record()


@router.patch('/{request_id}')
async def quote_request_update(
    request_id: str,
    changes: dict[str, Any] = Body(...),
    principal: Principal = Depends(staff_access),
    repos: QuoteRepositories = Depends(get_repositories),
):
    try:
        updated = await update_quote_request(repos, request_id, changes)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if updated is None:
        raise HTTPException(status_code=404, detail='Quote request not found')
    return updated.to_record()


@router.get('/destinations/{destination_id}/assignments')
async def destination_assignments(
    destination_id: str,
    principal: Principal = Depends(staff_access),
    repos: QuoteRepositories = Depends(get_repositories),
):
    return [row.to_record() for row in await list_assignments_for_destination(repos, destination_id)]


@router.post('/destinations/{destination_id}/assignments', status_code=201)
async def destination_assignment_create(
    destination_id: str,
    payload: AssignmentInput,
    principal: Principal = Depends(staff_access),
    repos: QuoteRepositories = Depends(get_repositories),
):
    try:
        assignment = await add_assignment(
            repos,
            destination_id=destination_id,
            carton_config_id=payload.carton_config_id,
            quantity=payload.quantity,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return assignment.to_record()


@router.patch('/assignments/{assignment_id}')
async def assignment_update(
    assignment_id: str,
    quantity: int = Body(..., embed=True),
    principal: Principal = Depends(staff_access),
    repos: QuoteRepositories = Depends(get_repositories),
):
    try:
        assignment = await set_assignment_quantity(repos, assignment_id, quantity)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if assignment is None:
        raise HTTPException(status_code=404, detail='Assignment not found')
    return assignment.to_record()


@router.get('/{request_id}/carton-configs')
async def request_carton_configs(
    request_id: str,
    principal: Principal = Depends(get_current_principal),
    repos: QuoteRepositories = Depends(get_repositories),
):
    detail = await get_quote_request(repos, request_id)
    if detail is None:
        raise HTTPException(status_code=404, detail='Quote request not found')
    assert_customer_scope(principal, detail.request.customer_id)
    return [row.to_record() for row in await list_carton_configurations_for_request(repos, request_id)]


@router.post('/{request_id}/carton-configs', status_code=201)
async def request_carton_config_create(
    request_id: str,
    draft: CartonConfigDraft,
    principal: Principal = Depends(staff_access),
    repos: QuoteRepositories = Depends(get_repositories),
):
    try:
        config = await create_carton_configuration(repos, request_id=request_id, draft=draft)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return config.to_record()


@router.patch('/carton-configs/{config_id}')
async def carton_config_update(
    config_id: str,
    changes: dict[str, Any] = Body(...),
    principal: Principal = Depends(staff_access),
    repos: QuoteRepositories = Depends(get_repositories),
):
    try:
        config = await update_carton_configuration(repos, config_id, changes)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if config is None:
        raise HTTPException(status_code=404, detail='Carton configuration not found')
    return config.to_record()


@router.patch('/destinations/{destination_id}')
async def destination_update(
    destination_id: str,
    changes: dict[str, Any] = Body(...),
    principal: Principal = Depends(staff_access),
    repos: QuoteRepositories = Depends(get_repositories),
):
    try:
        destination = await update_destination(repos, destination_id, changes)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if destination is None:
        raise HTTPException(status_code=404, detail='Destination not found')
    return destination.to_record()
