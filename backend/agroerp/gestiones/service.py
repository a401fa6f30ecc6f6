"""Period (gestión) lifecycle: open, close and exceptional reopen.

    ACTIVE --close--> CLOSED --reopen--> ACTIVE
    CLOSED --adjust--> CLOSED   (see adjustment_service)

Every transition stages its audit entry on the same session as the state
change and commits both together.
"""

import logging
import uuid
from datetime import date, datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from agroerp.audit.models import AuditEventType
from agroerp.audit.service import record_audit
from agroerp.auth.service import Principal
from agroerp.config import Settings
from agroerp.core.exceptions import (
    AlreadyClosed,
    AppError,
    AuthRequired,
    MissingReopenReason,
    NotClosed,
    NotFoundError,
    OpenPeriodConflict,
    PendingAgriculturalWorks,
    PendingLivestockWorks,
    PeriodLocked,
    StoreError,
    Unauthorized,
)
from agroerp.firms.models import Firm, Premise
from agroerp.gestiones.models import Campaign, PeriodStatus
from agroerp.gestiones.schemas import PeriodClose, PeriodOpen, PeriodReopen
from agroerp.gestiones.validation import count_pending_works
from agroerp.valuation import service as valuation_service
from agroerp.valuation.models import InventoryScope, ValuationType

logger = logging.getLogger(__name__)

AUDIT_MODULE = "gestiones"
REOPEN_WARNING = "EXCEPTIONAL OPERATION - review audit trail"


def default_period_name(start_date: date, end_date: date) -> str:
    return f"Gestión {start_date.year}/{end_date.year}"


# ---------------------------------------------------------------------------
# Reads and lock guards
# ---------------------------------------------------------------------------


async def get_period(db: AsyncSession, period_id: uuid.UUID) -> Campaign:
    period = await db.get(Campaign, period_id)
    if period is None:
        raise NotFoundError("Campaign", str(period_id))
    return period


async def get_active_period(db: AsyncSession, firm_id: uuid.UUID) -> Campaign | None:
    result = await db.execute(
        select(Campaign)
        .where(Campaign.firm_id == firm_id, Campaign.status == PeriodStatus.ACTIVE)
        .order_by(Campaign.start_date.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def list_periods(
    db: AsyncSession,
    firm_id: uuid.UUID,
    status: PeriodStatus | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> list[Campaign]:
    """Return a firm's periods, newest start date first."""
    query = select(Campaign).where(Campaign.firm_id == firm_id)
    if status is not None:
        query = query.where(Campaign.status == status)
    if date_from is not None:
        query = query.where(Campaign.start_date >= date_from)
    if date_to is not None:
        query = query.where(Campaign.end_date <= date_to)
    result = await db.execute(query.order_by(Campaign.start_date.desc()))
    return list(result.scalars().all())


async def assert_period_not_closed(db: AsyncSession, period_id: uuid.UUID) -> Campaign:
    """Raise PeriodLocked if ordinary writes are blocked for the period."""
    period = await get_period(db, period_id)
    if period.is_closed or period.is_locked:
        raise PeriodLocked(period_id)
    return period


async def assert_period_is_closed(db: AsyncSession, period_id: uuid.UUID) -> Campaign:
    """Raise NotClosed unless the period is CLOSED and locked."""
    period = await get_period(db, period_id)
    if not period.is_closed or not period.is_locked:
        raise NotClosed(period_id)
    return period


async def commit_or_raise(db: AsyncSession, code: str, message: str) -> None:
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise StoreError(code, message, exc) from exc


# ---------------------------------------------------------------------------
# Open
# ---------------------------------------------------------------------------


async def _carry_forward_opening_inventory(
    db: AsyncSession,
    period: Campaign,
    user_id: uuid.UUID | None,
) -> int:
    """Stage the latest FINAL valuations of each premise as this period's INITIAL ones."""
    result = await db.execute(select(Premise.id).where(Premise.firm_id == period.firm_id))
    carried = 0
    for premise_id in result.scalars().all():
        for scope in InventoryScope:
            last = await valuation_service.get_last_valuation(
                db, premise_id, ValuationType.FINAL, scope=scope
            )
            if last is None:
                continue
            await valuation_service.carry_forward_valuation(
                db, last, period.id, period.start_date, user_id
            )
            carried += 1
    return carried


async def open_period(
    db: AsyncSession,
    data: PeriodOpen,
    principal: Principal | None = None,
) -> Campaign:
    """Create the firm's new ACTIVE period.

    Fails with OpenPeriodConflict while another period of the firm is ACTIVE.
    """
    if await db.get(Firm, data.firm_id) is None:
        raise NotFoundError("Firm", str(data.firm_id))

    active = await get_active_period(db, data.firm_id)
    if active is not None:
        raise OpenPeriodConflict(active.id)

    user_id = principal.user_id if principal else None
    period = Campaign(
        id=uuid.uuid4(),
        firm_id=data.firm_id,
        name=data.name or default_period_name(data.start_date, data.end_date),
        start_date=data.start_date,
        end_date=data.end_date,
        status=PeriodStatus.ACTIVE,
        is_locked=False,
        notes=data.notes,
    )
    db.add(period)
    record_audit(
        db,
        firm_id=data.firm_id,
        event_type=AuditEventType.GESTION_OPENED,
        description=f"Period opened: {period.name}",
        module=AUDIT_MODULE,
        user=user_id,
        reference=period.id,
        metadata={
            "start_date": data.start_date,
            "end_date": data.end_date,
            "notes": data.notes,
        },
    )

    try:
        if data.carry_forward_inventory:
            carried = await _carry_forward_opening_inventory(db, period, user_id)
            logger.info("Carried %d valuation(s) forward into period %s", carried, period.id)
        await db.commit()
    except IntegrityError as exc:
        # Another ACTIVE period slipped in between the check and the insert.
        await db.rollback()
        active = await get_active_period(db, data.firm_id)
        if active is not None:
            raise OpenPeriodConflict(active.id) from exc
        raise StoreError("CAMPAIGN_CREATE_ERROR", "Error creating period.", exc) from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        raise StoreError("CAMPAIGN_CREATE_ERROR", "Error creating period.", exc) from exc

    await db.refresh(period)
    logger.info("Opened period %s (%s) for firm %s", period.id, period.name, period.firm_id)
    return period


# ---------------------------------------------------------------------------
# Close
# ---------------------------------------------------------------------------


async def _generate_final_valuations(
    db: AsyncSession,
    period: Campaign,
    data: PeriodClose,
    user_id: uuid.UUID,
    settings: Settings | None,
) -> None:
    result = await db.execute(select(Premise.id).where(Premise.firm_id == period.firm_id))
    for premise_id in result.scalars().all():
        await valuation_service.valuate_livestock(
            db,
            premise_id,
            period.end_date,
            method=data.valuation_method,
            campaign_id=period.id,
            valuation_type=ValuationType.FINAL,
            user_id=user_id,
            settings=settings,
            commit=False,
        )
        await valuation_service.valuate_inputs(
            db,
            premise_id,
            period.end_date,
            method=data.valuation_method,
            campaign_id=period.id,
            valuation_type=ValuationType.FINAL,
            user_id=user_id,
            commit=False,
        )


async def close_period(
    db: AsyncSession,
    period_id: uuid.UUID,
    data: PeriodClose,
    principal: Principal | None,
    settings: Settings | None = None,
) -> Campaign:
    """Close and lock a period.

    Checks, in order: authenticated caller, access to the period's firm, not
    already closed, no pending agricultural works, no pending livestock works.
    """
    if principal is None:
        raise AuthRequired()

    period = await get_period(db, period_id)

    if not principal.can_access(period.firm_id):
        raise Unauthorized(period.firm_id, principal.user_id)

    if period.is_closed:
        raise AlreadyClosed(period_id)

    agricultural, livestock = await count_pending_works(db, period_id)
    if agricultural:
        raise PendingAgriculturalWorks(agricultural)
    if livestock:
        raise PendingLivestockWorks(livestock)

    if data.generate_final_valuation:
        try:
            await _generate_final_valuations(db, period, data, principal.user_id, settings)
        except AppError:
            await db.rollback()
            raise

    period.status = PeriodStatus.CLOSED
    period.is_locked = True
    period.closed_by = principal.user_id
    period.closed_at = datetime.now(timezone.utc)
    period.closed_notes = data.notes
    record_audit(
        db,
        firm_id=period.firm_id,
        event_type=AuditEventType.GESTION_CLOSED,
        description=f"Period closed: {period.name} - method: {data.valuation_method.value}",
        module=AUDIT_MODULE,
        user=principal.user_id,
        reference=period.id,
        metadata={
            "valuation_method": data.valuation_method,
            "notes": data.notes,
            "closed_at": period.closed_at,
            "final_valuation_generated": data.generate_final_valuation,
        },
    )
    await commit_or_raise(db, "CAMPAIGN_CLOSE_ERROR", "Error closing period.")
    await db.refresh(period)
    logger.info("Closed period %s for firm %s", period.id, period.firm_id)
    return period


# ---------------------------------------------------------------------------
# Reopen
# ---------------------------------------------------------------------------


async def reopen_period(
    db: AsyncSession,
    period_id: uuid.UUID,
    data: PeriodReopen,
    principal: Principal | None = None,
) -> Campaign:
    """Exceptionally return a CLOSED period to ACTIVE. A reason is mandatory."""
    reason = (data.reopen_reason or "").strip()
    if not reason:
        raise MissingReopenReason()

    period = await get_period(db, period_id)
    if not period.is_closed:
        raise NotClosed(period_id)

    active = await get_active_period(db, period.firm_id)
    if active is not None and active.id != period.id:
        raise OpenPeriodConflict(active.id)

    user_id = principal.user_id if principal else None
    period.status = PeriodStatus.ACTIVE
    period.is_locked = False
    period.reopened_by = user_id
    period.reopened_at = datetime.now(timezone.utc)
    period.reopen_reason = reason
    record_audit(
        db,
        firm_id=period.firm_id,
        event_type=AuditEventType.GESTION_REOPENED,
        description=f"EXCEPTIONAL REOPEN of period {period.name} - reason: {reason}",
        module=AUDIT_MODULE,
        user=user_id,
        reference=period.id,
        metadata={
            "reopen_reason": reason,
            "reopened_at": period.reopened_at,
            "warning": REOPEN_WARNING,
        },
    )
    await commit_or_raise(db, "CAMPAIGN_REOPEN_ERROR", "Error reopening period.")
    await db.refresh(period)
    logger.warning(
        "Period %s of firm %s reopened by %s: %s",
        period.id,
        period.firm_id,
        user_id or "system",
        reason,
    )
    return period
