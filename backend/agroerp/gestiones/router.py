"""FastAPI router for period (gestión) lifecycle operations."""

import uuid
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from agroerp.auth.models import Role, User
from agroerp.auth.service import Principal
from agroerp.config import Settings
from agroerp.core.exceptions import ForbiddenError
from agroerp.dependencies import (
    get_db,
    get_optional_principal,
    get_principal,
    get_settings,
    require_role,
)
from agroerp.gestiones import adjustment_service, service
from agroerp.gestiones.models import PeriodStatus
from agroerp.gestiones.schemas import (
    AdjustmentCreate,
    AdjustmentResponse,
    PeriodClose,
    PeriodOpen,
    PeriodReopen,
    PeriodResponse,
    PreCloseReport,
)
from agroerp.gestiones.validation import validate_pre_close
from agroerp.valuation import service as valuation_service

router = APIRouter()


def _require_firm(principal: Principal, firm_id: uuid.UUID) -> None:
    if not principal.can_access(firm_id):
        raise ForbiddenError("You do not have access to this firm.")


@router.get("")
async def list_periods(
    firm_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(get_principal)],
    status: PeriodStatus | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> dict:
    _require_firm(principal, firm_id)
    periods = await service.list_periods(db, firm_id, status, date_from, date_to)
    return {"data": [PeriodResponse.model_validate(p) for p in periods]}


@router.post("", status_code=201)
async def open_period(
    data: PeriodOpen,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(get_principal)],
) -> dict:
    """Open a new ACTIVE period for a firm."""
    _require_firm(principal, data.firm_id)
    period = await service.open_period(db, data, principal)
    return {"data": PeriodResponse.model_validate(period)}


@router.get("/{period_id}")
async def get_period(
    period_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(get_principal)],
) -> dict:
    period = await service.get_period(db, period_id)
    _require_firm(principal, period.firm_id)
    return {"data": PeriodResponse.model_validate(period)}


@router.get("/{period_id}/pre-close")
async def pre_close_check(
    period_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(get_principal)],
) -> dict:
    """Advisory check the UI runs before asking the user to confirm a close."""
    period = await service.get_period(db, period_id)
    _require_firm(principal, period.firm_id)
    errors = await validate_pre_close(db, period_id)
    return {
        "data": PreCloseReport(campaign_id=period_id, can_close=not errors, errors=errors)
    }


@router.post("/{period_id}/close")
async def close_period(
    period_id: uuid.UUID,
    data: PeriodClose,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal | None, Depends(get_optional_principal)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict:
    period = await service.close_period(db, period_id, data, principal, settings)
    return {"data": PeriodResponse.model_validate(period)}


@router.post("/{period_id}/reopen")
async def reopen_period(
    period_id: uuid.UUID,
    data: PeriodReopen,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_role([Role.ADMIN, Role.MANAGER]))],
    principal: Annotated[Principal, Depends(get_principal)],
) -> dict:
    """Exceptionally reopen a closed period. Requires a reason."""
    period = await service.get_period(db, period_id)
    _require_firm(principal, period.firm_id)
    period = await service.reopen_period(db, period_id, data, principal)
    return {"data": PeriodResponse.model_validate(period)}


@router.get("/{period_id}/adjustments")
async def list_adjustments(
    period_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(get_principal)],
) -> dict:
    period = await service.get_period(db, period_id)
    _require_firm(principal, period.firm_id)
    adjustments = await adjustment_service.list_adjustments(db, period_id)
    return {"data": [AdjustmentResponse.model_validate(a) for a in adjustments]}


@router.post("/{period_id}/adjustments", status_code=201)
async def record_adjustment(
    period_id: uuid.UUID,
    data: AdjustmentCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(get_principal)],
) -> dict:
    period = await service.get_period(db, period_id)
    _require_firm(principal, period.firm_id)
    adjustment = await adjustment_service.record_adjustment(db, period_id, data, principal)
    return {"data": AdjustmentResponse.model_validate(adjustment)}


@router.get("/{period_id}/valuation-summary")
async def valuation_summary(
    period_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(get_principal)],
    refresh: bool = False,
) -> dict:
    """Livestock + input valuation totals of the period (cached for a few minutes)."""
    period = await service.get_period(db, period_id)
    _require_firm(principal, period.firm_id)
    summary = await valuation_service.valuation_summary(db, period_id, skip_cache=refresh)
    return {"data": summary}
