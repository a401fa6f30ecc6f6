import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from agroerp.auth.service import Principal
from agroerp.core.exceptions import ForbiddenError
from agroerp.core.pagination import PaginationParams, get_pagination
from agroerp.dependencies import get_db, get_principal
from agroerp.gestiones.service import get_period
from agroerp.works import service
from agroerp.works.models import WorkKind, WorkStatus
from agroerp.works.schemas import WorkCreate, WorkResponse, WorkStatusUpdate

router = APIRouter()


async def _check_period_access(db: AsyncSession, principal: Principal, campaign_id: uuid.UUID) -> None:
    period = await get_period(db, campaign_id)
    if not principal.can_access(period.firm_id):
        raise ForbiddenError("You do not have access to this firm.")


@router.get("/{kind}")
async def list_works(
    kind: WorkKind,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(get_principal)],
    pagination: Annotated[PaginationParams, Depends(get_pagination)],
    campaign_id: uuid.UUID = Query(...),
    status: WorkStatus | None = Query(None),
) -> dict:
    await _check_period_access(db, principal, campaign_id)
    works, meta = await service.list_works(db, kind, campaign_id, status, pagination)
    return {"data": [WorkResponse.model_validate(w) for w in works], "meta": meta}


@router.post("/{kind}", status_code=201)
async def create_work(
    kind: WorkKind,
    data: WorkCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(get_principal)],
) -> dict:
    await _check_period_access(db, principal, data.campaign_id)
    work = await service.create_work(db, kind, data, principal.user_id)
    return {"data": WorkResponse.model_validate(work)}


@router.patch("/{kind}/{work_id}/status")
async def update_work_status(
    kind: WorkKind,
    work_id: uuid.UUID,
    data: WorkStatusUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(get_principal)],
) -> dict:
    work = await service.get_work(db, kind, work_id)
    if not principal.can_access(work.firm_id):
        raise ForbiddenError("You do not have access to this firm.")
    work = await service.update_work_status(db, kind, work_id, data)
    return {"data": WorkResponse.model_validate(work)}
