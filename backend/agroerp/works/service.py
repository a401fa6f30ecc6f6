"""Agricultural and livestock work records.

Writes go through ``assert_period_not_closed`` so a CLOSED period rejects
ordinary edits; corrections on closed periods are post-close adjustments.
"""

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from agroerp.core.exceptions import NotFoundError
from agroerp.core.pagination import PaginationParams, build_pagination_meta
from agroerp.gestiones.service import assert_period_not_closed
from agroerp.works.models import WORK_MODELS, WorkKind, WorkStatus
from agroerp.works.schemas import WorkCreate, WorkStatusUpdate

logger = logging.getLogger(__name__)


async def create_work(
    db: AsyncSession,
    kind: WorkKind,
    data: WorkCreate,
    user_id: uuid.UUID | None = None,
):
    period = await assert_period_not_closed(db, data.campaign_id)
    model = WORK_MODELS[kind]
    work = model(
        **data.model_dump(),
        firm_id=period.firm_id,
        created_by=user_id,
    )
    db.add(work)
    await db.commit()
    await db.refresh(work)
    logger.info("Created %s work %s in period %s", kind.value, work.id, period.id)
    return work


async def get_work(db: AsyncSession, kind: WorkKind, work_id: uuid.UUID):
    model = WORK_MODELS[kind]
    work = await db.get(model, work_id)
    if work is None:
        raise NotFoundError("Work", str(work_id))
    return work


async def update_work_status(
    db: AsyncSession,
    kind: WorkKind,
    work_id: uuid.UUID,
    data: WorkStatusUpdate,
):
    work = await get_work(db, kind, work_id)
    await assert_period_not_closed(db, work.campaign_id)
    work.status = data.status
    await db.commit()
    await db.refresh(work)
    return work


async def list_works(
    db: AsyncSession,
    kind: WorkKind,
    campaign_id: uuid.UUID,
    status: WorkStatus | None,
    pagination: PaginationParams,
) -> tuple[list, dict]:
    model = WORK_MODELS[kind]
    query = select(model).where(model.campaign_id == campaign_id)
    if status is not None:
        query = query.where(model.status == status)

    count_q = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_q)).scalar() or 0

    query = (
        query.order_by(model.work_date.desc(), model.id)
        .offset(pagination.offset)
        .limit(pagination.limit)
    )
    result = await db.execute(query)
    return list(result.scalars().all()), build_pagination_meta(total, pagination)
