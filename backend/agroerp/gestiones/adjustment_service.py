"""Post-close adjustments: justified corrections against a closed period."""

import logging
import uuid
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agroerp.audit.models import AuditEventType
from agroerp.audit.service import record_audit
from agroerp.auth.service import Principal
from agroerp.core.exceptions import MissingDescription
from agroerp.gestiones.models import CampaignAdjustment
from agroerp.gestiones.schemas import AdjustmentCreate
from agroerp.gestiones.service import AUDIT_MODULE, assert_period_is_closed, commit_or_raise

logger = logging.getLogger(__name__)


async def record_adjustment(
    db: AsyncSession,
    period_id: uuid.UUID,
    data: AdjustmentCreate,
    principal: Principal | None = None,
) -> CampaignAdjustment:
    """Record a correction on a CLOSED period. The period stays closed."""
    period = await assert_period_is_closed(db, period_id)

    description = (data.description or "").strip()
    if not description:
        raise MissingDescription()

    user_id = principal.user_id if principal else None
    adjustment = CampaignAdjustment(
        id=uuid.uuid4(),
        campaign_id=period_id,
        adjustment_type=data.adjustment_type,
        description=description,
        adjustment_date=date.today(),
        old_value=data.old_value,
        new_value=data.new_value,
        reference_table=data.reference_table,
        reference_id=data.reference_id,
        created_by=user_id,
    )
    db.add(adjustment)
    record_audit(
        db,
        firm_id=period.firm_id,
        event_type=AuditEventType.GESTION_ADJUSTED,
        description=f"Post-close adjustment on {period.name}: {description}",
        module=AUDIT_MODULE,
        user=user_id,
        reference=adjustment.id,
        metadata={
            "campaign_id": period_id,
            "adjustment_type": data.adjustment_type,
            "reference_table": data.reference_table,
            "reference_id": data.reference_id,
            "old_value": data.old_value,
            "new_value": data.new_value,
        },
    )
    await commit_or_raise(db, "ADJUSTMENT_CREATE_ERROR", "Error recording adjustment.")
    await db.refresh(adjustment)
    logger.info("Adjustment %s recorded on closed period %s", adjustment.id, period_id)
    return adjustment


async def list_adjustments(db: AsyncSession, period_id: uuid.UUID) -> list[CampaignAdjustment]:
    result = await db.execute(
        select(CampaignAdjustment)
        .where(CampaignAdjustment.campaign_id == period_id)
        .order_by(CampaignAdjustment.created_at, CampaignAdjustment.id)
    )
    return list(result.scalars().all())
