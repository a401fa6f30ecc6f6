"""FastAPI router for inventory valuation runs and history."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from agroerp.auth.service import Principal
from agroerp.config import Settings
from agroerp.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from agroerp.dependencies import get_db, get_principal, get_settings
from agroerp.firms.models import Premise
from agroerp.gestiones import service as gestiones_service
from agroerp.valuation import service
from agroerp.valuation.models import InventoryScope, ValuationType
from agroerp.valuation.schemas import ValuationRequest, ValuationResponse

router = APIRouter()


async def _require_premise(db: AsyncSession, principal: Principal, premise_id: uuid.UUID) -> Premise:
    premise = await db.get(Premise, premise_id)
    if premise is None:
        raise NotFoundError("Premise", str(premise_id))
    if not principal.can_access(premise.firm_id):
        raise ForbiddenError("You do not have access to this premise.")
    return premise


async def _require_writable_period(db: AsyncSession, premise: Premise, campaign_id: uuid.UUID) -> None:
    """The target period must belong to the premise's firm and still accept writes."""
    period = await gestiones_service.get_period(db, campaign_id)
    if period.firm_id != premise.firm_id:
        raise ValidationError(
            "The period does not belong to the premise's firm.",
            code="CAMPAIGN_FIRM_MISMATCH",
            details={"campaign_id": str(campaign_id), "premise_id": str(premise.id)},
        )
    await gestiones_service.assert_period_not_closed(db, campaign_id)


@router.post("", status_code=201)
async def run_valuation(
    data: ValuationRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(get_principal)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict:
    """Run a livestock and/or input valuation; each kind yields its own record."""
    premise = await _require_premise(db, principal, data.premise_id)
    if data.campaign_id is not None:
        await _require_writable_period(db, premise, data.campaign_id)
    options = {
        "method": data.method,
        "pricing_source": data.pricing_source,
        "campaign_id": data.campaign_id,
        "valuation_type": data.valuation_type,
        "user_id": principal.user_id,
    }
    records = []
    if data.kind in ("livestock", "both"):
        records.append(
            await service.valuate_livestock(
                db, data.premise_id, data.valuation_date, settings=settings, **options
            )
        )
    if data.kind in ("inputs", "both"):
        records.append(
            await service.valuate_inputs(db, data.premise_id, data.valuation_date, **options)
        )
    return {"data": [ValuationResponse.model_validate(r) for r in records]}


@router.get("")
async def list_valuations(
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(get_principal)],
    premise_id: uuid.UUID | None = None,
    campaign_id: uuid.UUID | None = None,
    valuation_type: ValuationType | None = None,
) -> dict:
    records = await service.list_valuations(
        db,
        premise_id=premise_id,
        campaign_id=campaign_id,
        valuation_type=valuation_type,
        firm_ids=principal.firm_ids,
    )
    return {"data": [ValuationResponse.model_validate(r) for r in records]}


@router.get("/last/{premise_id}")
async def last_valuation(
    premise_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(get_principal)],
    valuation_type: ValuationType = ValuationType.FINAL,
    scope: InventoryScope | None = None,
) -> dict:
    await _require_premise(db, principal, premise_id)
    record = await service.get_last_valuation(db, premise_id, valuation_type, scope)
    return {"data": ValuationResponse.model_validate(record) if record else None}
