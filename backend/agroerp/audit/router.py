"""FastAPI router for reading the audit log."""

import uuid
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from agroerp.audit import service
from agroerp.audit.schemas import AuditEntryResponse, AuditFilter
from agroerp.auth.service import Principal
from agroerp.core.exceptions import ForbiddenError
from agroerp.core.pagination import PaginationParams, get_pagination
from agroerp.dependencies import get_db, get_principal

router = APIRouter()


def _require_firm(principal: Principal, firm_id: uuid.UUID) -> None:
    if not principal.can_access(firm_id):
        raise ForbiddenError("You do not have access to this firm's audit log.")


@router.get("/{firm_id}")
async def list_audit_entries(
    firm_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(get_principal)],
    pagination: Annotated[PaginationParams, Depends(get_pagination)],
    date_from: date | None = None,
    date_to: date | None = None,
    event_type: str | None = None,
    module: str | None = None,
    user: str | None = None,
) -> dict:
    _require_firm(principal, firm_id)
    filters = AuditFilter(
        firm_id=firm_id,
        date_from=date_from,
        date_to=date_to,
        event_type=event_type,
        module=module,
        user=user,
    )
    entries, meta = await service.list_audit_entries(db, filters, pagination)
    return {
        "data": [AuditEntryResponse.model_validate(e) for e in entries],
        "meta": meta,
    }


@router.get("/{firm_id}/facets")
async def list_audit_facets(
    firm_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(get_principal)],
) -> dict:
    """Distinct event types, modules and users, for filter dropdowns."""
    _require_firm(principal, firm_id)
    return {
        "data": {
            "event_types": await service.list_event_types(db, firm_id),
            "modules": await service.list_modules(db, firm_id),
            "users": await service.list_users(db, firm_id),
        }
    }
