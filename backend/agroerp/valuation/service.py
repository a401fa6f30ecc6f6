"""Inventory valuation: livestock and consumable inputs.

Each run reads the source rows as of a cutoff date, prices them with the
requested method and appends one ``InventoryValuation`` record. Livestock and
input runs produce separate records; ``valuation_summary`` adds them up.
Failures surface as ``ValuationError`` with no retry.
"""

import logging
import uuid
from collections import defaultdict
from datetime import date, datetime, time, timedelta

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from agroerp.audit.models import AuditEventType
from agroerp.audit.service import record_audit
from agroerp.config import Settings
from agroerp.core.cache import report_cache
from agroerp.core.exceptions import NotFoundError, ValuationError
from agroerp.firms.models import Premise
from agroerp.inputs.models import RECEIPT_MOVEMENT_TYPES, Input, InputMovement
from agroerp.livestock.models import Animal, AnimalStatus, HerdEvent, HerdEventType
from agroerp.valuation import engine
from agroerp.valuation.models import (
    InventoryScope,
    InventoryValuation,
    ValuationMethod,
    ValuationType,
)
from agroerp.valuation.schemas import ValuationSummary, ValuationTotals

logger = logging.getLogger(__name__)

AUDIT_MODULE = "valuation"


async def _get_premise(db: AsyncSession, premise_id: uuid.UUID) -> Premise:
    premise = await db.get(Premise, premise_id)
    if premise is None:
        raise NotFoundError("Premise", str(premise_id))
    return premise


def _end_of_day(as_of: date) -> datetime:
    return datetime.combine(as_of + timedelta(days=1), time.min)


# ---------------------------------------------------------------------------
# Livestock
# ---------------------------------------------------------------------------


async def _fetch_weighed_animals(
    db: AsyncSession,
    premise_id: uuid.UUID,
    as_of: date,
) -> list[engine.WeighedAnimal]:
    """ACTIVE animals created on or before *as_of*, with their weight at that date."""
    result = await db.execute(
        select(Animal)
        .where(
            Animal.premise_id == premise_id,
            Animal.status == AnimalStatus.ACTIVE,
            Animal.created_at < _end_of_day(as_of),
        )
        .order_by(Animal.id)
    )
    animals = list(result.scalars().unique().all())
    if not animals:
        return []

    # Latest weighing at or before the cutoff wins; ties broken by insertion time.
    events = await db.execute(
        select(HerdEvent.animal_id, HerdEvent.qty_kg)
        .where(
            HerdEvent.animal_id.in_([a.id for a in animals]),
            HerdEvent.event_type == HerdEventType.WEIGHING,
            HerdEvent.event_date <= as_of,
            HerdEvent.qty_kg.is_not(None),
        )
        .order_by(HerdEvent.animal_id, HerdEvent.event_date.desc(), HerdEvent.created_at.desc())
    )
    latest_weight: dict[uuid.UUID, float] = {}
    for animal_id, qty_kg in events.all():
        latest_weight.setdefault(animal_id, qty_kg)

    weighed = []
    for animal in animals:
        weight = latest_weight.get(animal.id)
        if weight is None:
            weight = animal.initial_weight or 0.0
        weighed.append(
            engine.WeighedAnimal(
                category_id=animal.current_category_id,
                category_name=animal.category.name if animal.category else None,
                weight_kg=float(weight),
            )
        )
    return weighed


async def valuate_livestock(
    db: AsyncSession,
    premise_id: uuid.UUID,
    as_of: date,
    *,
    method: ValuationMethod = ValuationMethod.WEIGHTED_AVG,
    pricing_source: str | None = None,
    campaign_id: uuid.UUID | None = None,
    valuation_type: ValuationType = ValuationType.INITIAL,
    user_id: uuid.UUID | None = None,
    settings: Settings | None = None,
    commit: bool = True,
) -> InventoryValuation:
    """Value the premise's herd by category and persist the record."""
    if settings is None:
        settings = Settings()
    premise = await _get_premise(db, premise_id)

    try:
        animals = await _fetch_weighed_animals(db, premise_id, as_of)
    except SQLAlchemyError as exc:
        raise ValuationError("ANIMALS_FETCH_ERROR", "Error fetching animals.", exc) from exc

    categories = engine.group_livestock(animals)
    totals = engine.price_livestock(
        categories,
        method,
        settings.livestock_placeholder_prices,
        settings.livestock_default_price,
    )

    valuation = InventoryValuation(
        id=uuid.uuid4(),
        firm_id=premise.firm_id,
        premise_id=premise_id,
        campaign_id=campaign_id,
        valuation_date=as_of,
        valuation_type=valuation_type,
        scope=InventoryScope.LIVESTOCK,
        valuation_method=method,
        pricing_source=pricing_source,
        livestock_total_heads=totals.heads,
        livestock_total_kg=totals.total_kg,
        livestock_total_value=totals.total_value,
        livestock_by_category=[c.as_dict() for c in totals.categories],
        inputs_total_items=0,
        inputs_total_value=0.0,
        inputs_by_category=[],
        uses_placeholder_prices=bool(totals.categories),
        created_by=user_id,
        notes=f"Valuation {valuation_type.value} - livestock - {method.value}",
    )
    await _save(db, valuation, user_id, commit)
    logger.info(
        "Livestock valuation %s for premise %s: %d head(s), %.2f kg, value %.2f",
        valuation.id,
        premise_id,
        totals.heads,
        totals.total_kg,
        totals.total_value,
    )
    return valuation


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


async def _weighted_average_costs(
    db: AsyncSession,
    input_ids: list[uuid.UUID],
    as_of: date,
) -> dict[uuid.UUID, float]:
    result = await db.execute(
        select(InputMovement.input_id, InputMovement.quantity, InputMovement.unit_cost).where(
            InputMovement.input_id.in_(input_ids),
            InputMovement.movement_type.in_(RECEIPT_MOVEMENT_TYPES),
            InputMovement.movement_date <= as_of,
        )
    )
    receipts: dict[uuid.UUID, list[tuple[float | None, float | None]]] = defaultdict(list)
    for input_id, quantity, unit_cost in result.all():
        receipts[input_id].append((quantity, unit_cost))
    return {input_id: engine.weighted_average_cost(receipts[input_id]) for input_id in input_ids}


async def valuate_inputs(
    db: AsyncSession,
    premise_id: uuid.UUID,
    as_of: date,
    *,
    method: ValuationMethod = ValuationMethod.WEIGHTED_AVG,
    pricing_source: str | None = None,
    campaign_id: uuid.UUID | None = None,
    valuation_type: ValuationType = ValuationType.INITIAL,
    user_id: uuid.UUID | None = None,
    commit: bool = True,
) -> InventoryValuation:
    """Value the premise's consumable stock by category and persist the record."""
    premise = await _get_premise(db, premise_id)

    try:
        result = await db.execute(
            select(Input)
            .where(Input.premise_id == premise_id, Input.current_stock > 0)
            .order_by(Input.id)
        )
        inputs = list(result.scalars().all())
        if method == ValuationMethod.WEIGHTED_AVG and inputs:
            average_costs = await _weighted_average_costs(db, [i.id for i in inputs], as_of)
        else:
            average_costs = {}
    except SQLAlchemyError as exc:
        raise ValuationError("INPUTS_FETCH_ERROR", "Error fetching inputs.", exc) from exc

    priced = []
    for item in inputs:
        if method == ValuationMethod.WEIGHTED_AVG:
            unit_price = average_costs.get(item.id, 0.0)
        else:
            # TODO: read market/mixed prices from pricing_source once a price feed exists.
            unit_price = item.unit_price or 0.0
        priced.append(
            engine.PricedInput(category=item.category, stock=item.current_stock, unit_price=unit_price)
        )
    totals = engine.value_inputs(priced)

    valuation = InventoryValuation(
        id=uuid.uuid4(),
        firm_id=premise.firm_id,
        premise_id=premise_id,
        campaign_id=campaign_id,
        valuation_date=as_of,
        valuation_type=valuation_type,
        scope=InventoryScope.INPUTS,
        valuation_method=method,
        pricing_source=pricing_source,
        livestock_total_heads=0,
        livestock_total_kg=0.0,
        livestock_total_value=0.0,
        livestock_by_category=[],
        inputs_total_items=totals.items,
        inputs_total_value=totals.total_value,
        inputs_by_category=[c.as_dict() for c in totals.categories],
        uses_placeholder_prices=method in engine.INPUT_PLACEHOLDER_METHODS and bool(priced),
        created_by=user_id,
        notes=f"Valuation {valuation_type.value} - inputs - {method.value}",
    )
    await _save(db, valuation, user_id, commit)
    logger.info(
        "Input valuation %s for premise %s: %d item(s), value %.2f",
        valuation.id,
        premise_id,
        totals.items,
        totals.total_value,
    )
    return valuation


# ---------------------------------------------------------------------------
# Persistence and history
# ---------------------------------------------------------------------------


async def _save(
    db: AsyncSession,
    valuation: InventoryValuation,
    user_id: uuid.UUID | None,
    commit: bool,
) -> None:
    db.add(valuation)
    record_audit(
        db,
        firm_id=valuation.firm_id,
        event_type=AuditEventType.INVENTORY_VALUED,
        description=valuation.notes or "Inventory valuation",
        module=AUDIT_MODULE,
        user=user_id,
        reference=valuation.id,
        metadata={
            "premise_id": valuation.premise_id,
            "campaign_id": valuation.campaign_id,
            "valuation_type": valuation.valuation_type,
            "valuation_method": valuation.valuation_method,
            "total_value": valuation.total_value,
            "uses_placeholder_prices": valuation.uses_placeholder_prices,
        },
    )
    try:
        if commit:
            await db.commit()
            await db.refresh(valuation)
        else:
            await db.flush()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise ValuationError("VALUATION_SAVE_ERROR", "Error saving valuation.", exc) from exc


async def carry_forward_valuation(
    db: AsyncSession,
    source: InventoryValuation,
    campaign_id: uuid.UUID,
    as_of: date,
    user_id: uuid.UUID | None = None,
) -> InventoryValuation:
    """Stage a copy of *source* as the INITIAL valuation of another period.

    The caller commits.
    """
    opening = InventoryValuation(
        id=uuid.uuid4(),
        firm_id=source.firm_id,
        premise_id=source.premise_id,
        campaign_id=campaign_id,
        valuation_date=as_of,
        valuation_type=ValuationType.INITIAL,
        scope=source.scope,
        valuation_method=source.valuation_method,
        pricing_source=source.pricing_source,
        livestock_total_heads=source.livestock_total_heads,
        livestock_total_kg=source.livestock_total_kg,
        livestock_total_value=source.livestock_total_value,
        livestock_by_category=list(source.livestock_by_category or []),
        inputs_total_items=source.inputs_total_items,
        inputs_total_value=source.inputs_total_value,
        inputs_by_category=list(source.inputs_by_category or []),
        uses_placeholder_prices=source.uses_placeholder_prices,
        created_by=user_id,
        notes=f"Opening balance carried forward from valuation {source.id}",
    )
    db.add(opening)
    record_audit(
        db,
        firm_id=source.firm_id,
        event_type=AuditEventType.INVENTORY_CARRIED_FORWARD,
        description=opening.notes,
        module=AUDIT_MODULE,
        user=user_id,
        reference=opening.id,
        metadata={"source_valuation_id": source.id, "campaign_id": campaign_id},
    )
    return opening


async def get_last_valuation(
    db: AsyncSession,
    premise_id: uuid.UUID,
    valuation_type: ValuationType = ValuationType.FINAL,
    scope: InventoryScope | None = None,
) -> InventoryValuation | None:
    """Most recent valuation of *valuation_type* for the premise, or None."""
    query = select(InventoryValuation).where(
        InventoryValuation.premise_id == premise_id,
        InventoryValuation.valuation_type == valuation_type,
    )
    if scope is not None:
        query = query.where(InventoryValuation.scope == scope)
    result = await db.execute(
        query.order_by(
            InventoryValuation.valuation_date.desc(),
            InventoryValuation.created_at.desc(),
        ).limit(1)
    )
    return result.scalar_one_or_none()


async def list_valuations(
    db: AsyncSession,
    premise_id: uuid.UUID | None = None,
    campaign_id: uuid.UUID | None = None,
    valuation_type: ValuationType | None = None,
    firm_ids: frozenset[uuid.UUID] | None = None,
) -> list[InventoryValuation]:
    query = select(InventoryValuation)
    if premise_id is not None:
        query = query.where(InventoryValuation.premise_id == premise_id)
    if campaign_id is not None:
        query = query.where(InventoryValuation.campaign_id == campaign_id)
    if valuation_type is not None:
        query = query.where(InventoryValuation.valuation_type == valuation_type)
    if firm_ids is not None:
        query = query.where(InventoryValuation.firm_id.in_(firm_ids))
    result = await db.execute(
        query.order_by(InventoryValuation.valuation_date.desc(), InventoryValuation.created_at.desc())
    )
    return list(result.scalars().all())


def _totals(records: list[InventoryValuation]) -> ValuationTotals:
    totals = ValuationTotals()
    for record in records:
        totals.livestock_total_heads += record.livestock_total_heads
        totals.livestock_total_kg += record.livestock_total_kg
        totals.livestock_total_value += record.livestock_total_value
        totals.inputs_total_items += record.inputs_total_items
        totals.inputs_total_value += record.inputs_total_value
        totals.uses_placeholder_prices = totals.uses_placeholder_prices or record.uses_placeholder_prices
        totals.valuation_ids.append(record.id)
    totals.total_value = totals.livestock_total_value + totals.inputs_total_value
    return totals


async def valuation_summary(
    db: AsyncSession,
    campaign_id: uuid.UUID,
    skip_cache: bool = False,
) -> ValuationSummary:
    """Combined livestock + input totals of a period, per valuation type.

    Served from the report cache when fresh.
    """
    cache_key = f"valuation_summary:{campaign_id}"
    if not skip_cache:
        cached = report_cache.get(cache_key)
        if cached is not None:
            return cached.model_copy(deep=True)

    records = await list_valuations(db, campaign_id=campaign_id)
    summary = ValuationSummary(
        campaign_id=campaign_id,
        initial=_totals([r for r in records if r.valuation_type == ValuationType.INITIAL]),
        final=_totals([r for r in records if r.valuation_type == ValuationType.FINAL]),
    )
    report_cache.set(cache_key, summary.model_copy(deep=True))
    return summary
