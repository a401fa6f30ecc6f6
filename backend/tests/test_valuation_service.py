"""Valuation runs against the database: cutoffs, pricing, history and summary."""

import uuid
from datetime import date, datetime

import pytest
from sqlalchemy import select

from agroerp.audit.models import AuditEntry, AuditEventType
from agroerp.core.cache import report_cache
from agroerp.core.exceptions import NotFoundError
from agroerp.inputs.models import Input, InputMovement, MovementType
from agroerp.livestock.models import Animal, AnimalStatus, HerdEvent, HerdEventType, LivestockCategory
from agroerp.valuation import service
from agroerp.valuation.models import InventoryScope, ValuationMethod, ValuationType

AS_OF = date(2025, 6, 30)


@pytest.fixture
async def herd(db, premise, created_long_ago):
    """Two steers and a cow, one sold animal and one born after the cutoff."""
    novillos = LivestockCategory(name="Novillos")
    vacas = LivestockCategory(name="Vacas")
    db.add_all([novillos, vacas])
    await db.flush()

    steer_a = Animal(premise_id=premise.id, current_category_id=novillos.id, initial_weight=180.0, created_at=created_long_ago)
    steer_b = Animal(premise_id=premise.id, current_category_id=novillos.id, initial_weight=200.0, created_at=created_long_ago)
    cow = Animal(premise_id=premise.id, current_category_id=vacas.id, initial_weight=420.0, created_at=created_long_ago)
    sold = Animal(
        premise_id=premise.id,
        current_category_id=vacas.id,
        initial_weight=500.0,
        status=AnimalStatus.SOLD,
        created_at=created_long_ago,
    )
    calf = Animal(
        premise_id=premise.id,
        current_category_id=novillos.id,
        initial_weight=35.0,
        created_at=datetime(2025, 9, 1, 10, 0, 0),
    )
    db.add_all([steer_a, steer_b, cow, sold, calf])
    await db.flush()

    db.add_all(
        [
            HerdEvent(animal_id=steer_a.id, event_type=HerdEventType.WEIGHING, event_date=date(2025, 3, 1), qty_kg=250.0),
            HerdEvent(animal_id=steer_a.id, event_type=HerdEventType.WEIGHING, event_date=date(2025, 6, 1), qty_kg=310.0),
            # After the cutoff: ignored.
            HerdEvent(animal_id=steer_a.id, event_type=HerdEventType.WEIGHING, event_date=date(2025, 8, 1), qty_kg=380.0),
            HerdEvent(animal_id=cow.id, event_type=HerdEventType.TREATMENT, event_date=date(2025, 5, 1), qty_kg=None),
        ]
    )
    await db.commit()
    return {"novillos": novillos, "vacas": vacas}


async def _add_input(db, premise, name, category, stock, unit_price=None, receipts=()):
    item = Input(
        premise_id=premise.id,
        name=name,
        category=category,
        unit="kg",
        current_stock=stock,
        unit_price=unit_price,
    )
    db.add(item)
    await db.flush()
    for movement_type, quantity, unit_cost, movement_date in receipts:
        db.add(
            InputMovement(
                input_id=item.id,
                movement_type=movement_type,
                quantity=quantity,
                unit_cost=unit_cost,
                movement_date=movement_date,
            )
        )
    await db.commit()
    return item


# ---------------------------------------------------------------------------
# Livestock
# ---------------------------------------------------------------------------


async def test_livestock_valuation_uses_latest_weighing_before_cutoff(db, premise, herd, principal):
    record = await service.valuate_livestock(db, premise.id, AS_OF, user_id=principal.user_id)

    assert record.scope == InventoryScope.LIVESTOCK
    assert record.valuation_type == ValuationType.INITIAL
    assert record.livestock_total_heads == 3
    # steer_a weighed 310 on 2025-06-01, steer_b falls back to 200, cow to 420
    assert record.livestock_total_kg == 930.0

    by_name = {c["name"]: c for c in record.livestock_by_category}
    assert list(by_name) == ["Novillos", "Vacas"]
    assert by_name["Novillos"]["heads"] == 2
    assert by_name["Novillos"]["total_kg"] == 510.0
    assert by_name["Novillos"]["avg_kg"] == 255.0
    assert by_name["Vacas"]["category_id"] == str(herd["vacas"].id)


@pytest.mark.parametrize(
    "method, price",
    [
        (ValuationMethod.WEIGHTED_AVG, 500.0),
        (ValuationMethod.HISTORICAL, 480.0),
        (ValuationMethod.MARKET, 520.0),
        (ValuationMethod.MIXED, 500.0),
    ],
)
async def test_livestock_prices_are_flagged_placeholders(db, premise, herd, settings, method, price):
    record = await service.valuate_livestock(db, premise.id, AS_OF, method=method, settings=settings)

    assert record.uses_placeholder_prices is True
    for category in record.livestock_by_category:
        assert category["unit_price"] == price
        assert category["placeholder_price"] is True
        assert category["total_value"] == category["total_kg"] * category["unit_price"]
    assert record.livestock_total_value == sum(c["total_value"] for c in record.livestock_by_category)


async def test_livestock_prices_come_from_settings(db, premise, herd):
    from agroerp.config import Settings

    custom = Settings(_env_file=None, livestock_placeholder_prices={"market": 610.0})
    record = await service.valuate_livestock(
        db, premise.id, AS_OF, method=ValuationMethod.MARKET, settings=custom
    )
    assert record.livestock_total_value == 930.0 * 610.0


async def test_livestock_valuation_of_empty_premise(db, premise, settings):
    record = await service.valuate_livestock(db, premise.id, AS_OF, settings=settings)
    assert record.livestock_total_heads == 0
    assert record.livestock_total_value == 0.0
    assert record.livestock_by_category == []
    assert record.uses_placeholder_prices is False


async def test_valuation_of_unknown_premise(db):
    with pytest.raises(NotFoundError) as exc_info:
        await service.valuate_livestock(db, uuid.uuid4(), AS_OF)
    assert exc_info.value.code == "PREMISE_NOT_FOUND"


async def test_valuation_writes_audit_entry(db, firm, premise, herd, principal, settings):
    record = await service.valuate_livestock(
        db, premise.id, AS_OF, user_id=principal.user_id, settings=settings
    )

    result = await db.execute(
        select(AuditEntry).where(AuditEntry.event_type == AuditEventType.INVENTORY_VALUED.value)
    )
    entries = list(result.scalars().all())
    assert len(entries) == 1
    assert entries[0].firm_id == firm.id
    assert entries[0].module == "valuation"
    assert entries[0].reference == str(record.id)
    assert entries[0].details["total_value"] == record.total_value
    assert entries[0].details["uses_placeholder_prices"] is True


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


async def test_input_weighted_average_of_receipts(db, premise):
    await _add_input(
        db,
        premise,
        "Semilla soja",
        "Semillas",
        stock=30.0,
        receipts=[
            (MovementType.PURCHASE, 10.0, 5.0, date(2025, 2, 1)),
            (MovementType.ENTRY, 20.0, 8.0, date(2025, 4, 1)),
            (MovementType.EXIT, 5.0, 99.0, date(2025, 5, 1)),
        ],
    )

    record = await service.valuate_inputs(db, premise.id, AS_OF)

    assert record.scope == InventoryScope.INPUTS
    assert record.inputs_total_items == 1
    assert record.inputs_total_value == pytest.approx(30.0 * 7.0)
    assert record.uses_placeholder_prices is False


async def test_input_without_receipts_is_valued_at_zero(db, premise):
    await _add_input(db, premise, "Gasoil", "Combustibles", stock=100.0, unit_price=1.2)

    record = await service.valuate_inputs(db, premise.id, AS_OF)

    assert record.inputs_total_items == 1
    assert record.inputs_total_value == 0.0


async def test_input_receipts_after_cutoff_are_ignored(db, premise):
    await _add_input(
        db,
        premise,
        "Urea",
        "Fertilizantes",
        stock=10.0,
        receipts=[
            (MovementType.PURCHASE, 10.0, 4.0, date(2025, 1, 10)),
            (MovementType.PURCHASE, 10.0, 10.0, date(2025, 7, 10)),
        ],
    )
    record = await service.valuate_inputs(db, premise.id, AS_OF)
    assert record.inputs_total_value == 40.0


async def test_inputs_without_stock_are_skipped(db, premise):
    await _add_input(db, premise, "Glifosato", "Agroquímicos", stock=0.0, unit_price=9.0)
    record = await service.valuate_inputs(db, premise.id, AS_OF, method=ValuationMethod.HISTORICAL)
    assert record.inputs_total_items == 0
    assert record.inputs_by_category == []


async def test_input_totals_are_sum_of_categories(db, premise):
    await _add_input(db, premise, "Semilla maíz", "Semillas", stock=12.5, unit_price=3.3)
    await _add_input(db, premise, "Semilla trigo", "Semillas", stock=7.25, unit_price=1.1)
    await _add_input(db, premise, "Atrazina", "Agroquímicos", stock=3.0, unit_price=0.7)

    record = await service.valuate_inputs(db, premise.id, AS_OF, method=ValuationMethod.HISTORICAL)

    categories = record.inputs_by_category
    assert [c["category"] for c in categories] == ["Agroquímicos", "Semillas"]
    assert categories[1]["total_value"] == 12.5 * 3.3 + 7.25 * 1.1
    assert record.inputs_total_value == sum(c["total_value"] for c in categories)
    assert record.uses_placeholder_prices is False


@pytest.mark.parametrize("method", [ValuationMethod.MARKET, ValuationMethod.MIXED])
async def test_input_market_prices_are_flagged(db, premise, method):
    await _add_input(db, premise, "Semilla maíz", "Semillas", stock=2.0, unit_price=3.0)
    record = await service.valuate_inputs(db, premise.id, AS_OF, method=method)
    assert record.inputs_total_value == 6.0
    assert record.uses_placeholder_prices is True


# ---------------------------------------------------------------------------
# History and summary
# ---------------------------------------------------------------------------


async def test_get_last_valuation_by_type_and_scope(db, premise, herd, settings):
    assert await service.get_last_valuation(db, premise.id) is None

    await service.valuate_livestock(
        db, premise.id, date(2025, 3, 31), valuation_type=ValuationType.FINAL, settings=settings
    )
    latest = await service.valuate_livestock(
        db, premise.id, AS_OF, valuation_type=ValuationType.FINAL, settings=settings
    )
    inputs = await service.valuate_inputs(db, premise.id, date(2025, 1, 31), valuation_type=ValuationType.FINAL)

    assert (await service.get_last_valuation(db, premise.id)).id == latest.id
    last_inputs = await service.get_last_valuation(
        db, premise.id, ValuationType.FINAL, scope=InventoryScope.INPUTS
    )
    assert last_inputs.id == inputs.id
    assert await service.get_last_valuation(db, premise.id, ValuationType.INITIAL) is None


async def test_list_valuations_respects_firm_access(db, firm, other_firm, premise, settings):
    await service.valuate_livestock(db, premise.id, AS_OF, settings=settings)

    assert len(await service.list_valuations(db, premise_id=premise.id)) == 1
    assert len(await service.list_valuations(db, firm_ids=frozenset({firm.id}))) == 1
    assert await service.list_valuations(db, firm_ids=frozenset({other_firm.id})) == []


async def test_valuation_summary_adds_livestock_and_inputs(db, premise, period, herd, settings):
    await _add_input(db, premise, "Semilla maíz", "Semillas", stock=2.0, unit_price=3.0)
    livestock = await service.valuate_livestock(
        db, premise.id, AS_OF, campaign_id=period.id, settings=settings
    )
    inputs = await service.valuate_inputs(
        db, premise.id, AS_OF, method=ValuationMethod.HISTORICAL, campaign_id=period.id
    )

    summary = await service.valuation_summary(db, period.id)

    assert summary.initial.livestock_total_heads == 3
    assert summary.initial.inputs_total_value == 6.0
    assert summary.initial.total_value == livestock.livestock_total_value + inputs.inputs_total_value
    assert set(summary.initial.valuation_ids) == {livestock.id, inputs.id}
    assert summary.final.total_value == 0.0


async def test_valuation_summary_is_cached_until_refresh(db, premise, period, herd, settings):
    first = await service.valuation_summary(db, period.id)
    assert first.initial.total_value == 0.0
    assert report_cache.get(f"valuation_summary:{period.id}") == first

    await service.valuate_livestock(db, premise.id, AS_OF, campaign_id=period.id, settings=settings)

    stale = await service.valuation_summary(db, period.id)
    assert stale.initial.total_value == 0.0

    fresh = await service.valuation_summary(db, period.id, skip_cache=True)
    assert fresh.initial.total_value == 930.0 * 500.0


async def test_cached_summary_is_not_shared_with_callers(db, premise, period, herd, settings):
    await service.valuate_livestock(db, premise.id, AS_OF, campaign_id=period.id, settings=settings)
    first = await service.valuation_summary(db, period.id)

    first.initial.total_value = -1.0
    first.initial.valuation_ids.clear()

    again = await service.valuation_summary(db, period.id)
    assert again.initial.total_value == 930.0 * 500.0
    assert len(again.initial.valuation_ids) == 1
