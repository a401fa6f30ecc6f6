"""Pre-close checks for a period.

Read-only and safe to call repeatedly. The UI uses ``validate_pre_close`` as
a pre-flight; ``close_period`` re-runs ``count_pending_works`` itself.
"""

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from agroerp.works.models import SETTLED_WORK_STATUSES, AgriculturalWork, LivestockWork


async def _count_unsettled(db: AsyncSession, model, period_id: uuid.UUID) -> int:
    count = await db.scalar(
        select(func.count(model.id)).where(
            model.campaign_id == period_id,
            model.status.not_in(SETTLED_WORK_STATUSES),
        )
    )
    return count or 0


async def count_pending_works(db: AsyncSession, period_id: uuid.UUID) -> tuple[int, int]:
    """Return (agricultural, livestock) work records not yet APPROVED/CLOSED/CANCELLED."""
    agricultural = await _count_unsettled(db, AgriculturalWork, period_id)
    livestock = await _count_unsettled(db, LivestockWork, period_id)
    return agricultural, livestock


def describe_pending(agricultural: int, livestock: int) -> list[str]:
    errors = []
    if agricultural:
        errors.append(f"{agricultural} agricultural work(s) pending approval")
    if livestock:
        errors.append(f"{livestock} livestock work(s) pending approval")
    return errors


async def validate_pre_close(db: AsyncSession, period_id: uuid.UUID) -> list[str]:
    """Human-readable reasons blocking the close; empty means closing is allowed."""
    agricultural, livestock = await count_pending_works(db, period_id)
    return describe_pending(agricultural, livestock)
