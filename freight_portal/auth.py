from dataclasses import dataclass
from enum import Enum

from fastapi import Depends, HTTPException, Request, status

PRINCIPAL_ID_HEADER = 'x-principal-id'
PRINCIPAL_ROLE_HEADER = 'x-principal-role'


class Role(str, Enum):
    ADMIN = 'ADMIN'
    STAFF = 'STAFF'
    CUSTOMER = 'CUSTOMER'


@dataclass
class Principal:
    id: str
    role: Role


def get_current_principal(request: Request) -> Principal:
    # Identity is asserted by the upstream auth gateway; it is trusted as-is here.
    principal_id = (request.headers.get(PRINCIPAL_ID_HEADER) or '').strip()
    raw_role = (request.headers.get(PRINCIPAL_ROLE_HEADER) or '').strip().upper()
    if not principal_id or not raw_role:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    try:
        role = Role(raw_role)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN) from exc
    return Principal(id=principal_id, role=role)


def is_staff_role(role: Role) -> bool:
    return role in {Role.ADMIN, Role.STAFF}


def require_role(*allowed: Role):
    def _dep(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)
        return principal

    return _dep


def assert_customer_scope(principal: Principal, customer_id: str) -> None:
    if is_staff_role(principal.role):
        return
    if principal.id != customer_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
