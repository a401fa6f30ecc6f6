"""Failures of the store: tagged error codes and nothing half-written."""

from datetime import date

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from agroerp.audit.models import AuditEntry, AuditEventType
from agroerp.core.exceptions import StoreError, ValuationError
from agroerp.gestiones import adjustment_service, service
from agroerp.gestiones.models import Campaign, CampaignAdjustment, PeriodStatus
from agroerp.gestiones.schemas import AdjustmentCreate, PeriodClose, PeriodReopen
from agroerp.livestock.models import Animal, LivestockCategory
from agroerp.valuation import service as valuation_service
from agroerp.valuation.models import InventoryValuation

AS_OF = date(2025, 6, 30)


async def _broken(*args, **kwargs):
    raise SQLAlchemyError("database is locked")


async def _stored_status(session_factory, period_id) -> PeriodStatus:
    async with session_factory() as other:
        return (await other.get(Campaign, period_id)).status


async def _count(session_factory, column, *criteria) -> int:
    async with session_factory() as other:
        return await other.scalar(select(func.count(column)).where(*criteria))


async def test_close_commit_failure_keeps_period_active(db, firm, period, principal, session_factory, monkeypatch):
    monkeypatch.setattr(db, "commit", _broken)

    with pytest.raises(StoreError) as exc_info:
        await service.close_period(db, period.id, PeriodClose(), principal)

    assert exc_info.value.code == "CAMPAIGN_CLOSE_ERROR"
    assert exc_info.value.status_code == 500
    assert await _stored_status(session_factory, period.id) == PeriodStatus.ACTIVE
    assert await _count(session_factory, AuditEntry.id, AuditEntry.firm_id == firm.id) == 0


async def test_reopen_commit_failure_keeps_period_closed(db, firm, period, principal, session_factory, monkeypatch):
    await service.close_period(db, period.id, PeriodClose(), principal)
    monkeypatch.setattr(db, "commit", _broken)

    with pytest.raises(StoreError) as exc_info:
        await service.reopen_period(db, period.id, PeriodReopen(reopen_reason="late invoice"), principal)

    assert exc_info.value.code == "CAMPAIGN_REOPEN_ERROR"
    assert await _stored_status(session_factory, period.id) == PeriodStatus.CLOSED
    assert (
        await _count(
            session_factory,
            AuditEntry.id,
            AuditEntry.event_type == AuditEventType.GESTION_REOPENED.value,
        )
        == 0
    )


async def test_adjustment_commit_failure_writes_nothing(db, firm, period, principal, session_factory, monkeypatch):
    await service.close_period(db, period.id, PeriodClose(), principal)
    monkeypatch.setattr(db, "commit", _broken)

    data = AdjustmentCreate(adjustment_type="stock", description="Recount of seed bags")
    with pytest.raises(StoreError) as exc_info:
        await adjustment_service.record_adjustment(db, period.id, data, principal)

    assert exc_info.value.code == "ADJUSTMENT_CREATE_ERROR"
    assert await _count(session_factory, CampaignAdjustment.id, CampaignAdjustment.campaign_id == period.id) == 0
    assert (
        await _count(
            session_factory,
            AuditEntry.id,
            AuditEntry.event_type == AuditEventType.GESTION_ADJUSTED.value,
        )
        == 0
    )


async def test_failed_final_valuation_rolls_back_close(
    db, firm, premise, period, principal, session_factory, monkeypatch, created_long_ago
):
    category = LivestockCategory(name="Novillos")
    db.add(category)
    await db.flush()
    db.add(Animal(premise_id=premise.id, current_category_id=category.id, initial_weight=300.0, created_at=created_long_ago))
    await db.commit()

    async def failing_inputs(*args, **kwargs):
        raise ValuationError("INPUTS_FETCH_ERROR", "Error fetching inputs.")

    monkeypatch.setattr(valuation_service, "valuate_inputs", failing_inputs)

    with pytest.raises(ValuationError) as exc_info:
        await service.close_period(db, period.id, PeriodClose(generate_final_valuation=True), principal)

    assert exc_info.value.code == "INPUTS_FETCH_ERROR"
    assert await _stored_status(session_factory, period.id) == PeriodStatus.ACTIVE
    # The livestock record flushed before the failure is rolled back too.
    assert await _count(session_factory, InventoryValuation.id, InventoryValuation.campaign_id == period.id) == 0
    assert await _count(session_factory, AuditEntry.id, AuditEntry.firm_id == firm.id) == 0


async def test_animals_fetch_failure_is_tagged(db, premise, settings, session_factory, monkeypatch):
    monkeypatch.setattr(valuation_service, "_fetch_weighed_animals", _broken)

    with pytest.raises(ValuationError) as exc_info:
        await valuation_service.valuate_livestock(db, premise.id, AS_OF, settings=settings)

    assert exc_info.value.code == "ANIMALS_FETCH_ERROR"
    assert exc_info.value.details == {"error": "database is locked"}
    assert await _count(session_factory, InventoryValuation.id, InventoryValuation.premise_id == premise.id) == 0


async def test_inputs_fetch_failure_is_tagged(db, premise, session_factory, monkeypatch):
    monkeypatch.setattr(db, "execute", _broken)

    with pytest.raises(ValuationError) as exc_info:
        await valuation_service.valuate_inputs(db, premise.id, AS_OF)

    assert exc_info.value.code == "INPUTS_FETCH_ERROR"
    assert await _count(session_factory, InventoryValuation.id, InventoryValuation.premise_id == premise.id) == 0


async def test_valuation_save_failure_writes_no_record_or_audit(
    db, firm, premise, settings, session_factory, monkeypatch
):
    monkeypatch.setattr(db, "commit", _broken)

    with pytest.raises(ValuationError) as exc_info:
        await valuation_service.valuate_livestock(db, premise.id, AS_OF, settings=settings)

    assert exc_info.value.code == "VALUATION_SAVE_ERROR"
    assert await _count(session_factory, InventoryValuation.id, InventoryValuation.premise_id == premise.id) == 0
    assert (
        await _count(
            session_factory,
            AuditEntry.id,
            AuditEntry.event_type == AuditEventType.INVENTORY_VALUED.value,
        )
        == 0
    )
