"""Pure aggregation and pricing rules for inventory valuation.

Nothing here touches the database; ``agroerp.valuation.service`` fetches the
rows, feeds them through these functions and persists the result.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, field

from agroerp.valuation.models import ValuationMethod

UNCATEGORIZED = "Uncategorized"

# Methods whose input unit price is not yet differentiated from the stored price.
INPUT_PLACEHOLDER_METHODS = frozenset({ValuationMethod.MARKET, ValuationMethod.MIXED})


@dataclass
class LivestockCategoryAggregate:
    category_id: str | None
    name: str
    heads: int = 0
    total_kg: float = 0.0
    avg_kg: float = 0.0
    unit_price: float = 0.0
    total_value: float = 0.0
    placeholder_price: bool = False

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class InputCategoryAggregate:
    category: str
    items: int = 0
    total_stock: float = 0.0
    total_value: float = 0.0

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class LivestockTotals:
    heads: int
    total_kg: float
    total_value: float
    categories: list[LivestockCategoryAggregate] = field(default_factory=list)


@dataclass
class InputTotals:
    items: int
    total_value: float
    categories: list[InputCategoryAggregate] = field(default_factory=list)


@dataclass(frozen=True)
class WeighedAnimal:
    category_id: uuid.UUID | None
    category_name: str | None
    weight_kg: float


@dataclass(frozen=True)
class PricedInput:
    category: str | None
    stock: float
    unit_price: float


def _category_sort_key(name: str, key: object) -> tuple[str, str]:
    return (name, "" if key is None else str(key))


def group_livestock(animals: Iterable[WeighedAnimal]) -> list[LivestockCategoryAggregate]:
    """Group animals by category, accumulating heads and kg, ordered by (name, id)."""
    groups: dict[uuid.UUID | None, LivestockCategoryAggregate] = {}
    for animal in animals:
        aggregate = groups.get(animal.category_id)
        if aggregate is None:
            aggregate = LivestockCategoryAggregate(
                category_id=str(animal.category_id) if animal.category_id else None,
                name=animal.category_name or UNCATEGORIZED,
            )
            groups[animal.category_id] = aggregate
        aggregate.heads += 1
        aggregate.total_kg += animal.weight_kg

    for aggregate in groups.values():
        if aggregate.heads > 0:
            aggregate.avg_kg = aggregate.total_kg / aggregate.heads

    return sorted(groups.values(), key=lambda a: _category_sort_key(a.name, a.category_id))


def livestock_unit_price(
    method: ValuationMethod,
    placeholder_prices: Mapping[str, float],
    default_price: float,
) -> float:
    """$/kg for *method*. Every method currently resolves to a configured stand-in."""
    return float(placeholder_prices.get(method.value, default_price))


def price_livestock(
    categories: list[LivestockCategoryAggregate],
    method: ValuationMethod,
    placeholder_prices: Mapping[str, float],
    default_price: float,
) -> LivestockTotals:
    unit_price = livestock_unit_price(method, placeholder_prices, default_price)
    heads = 0
    total_kg = 0.0
    total_value = 0.0
    for aggregate in categories:
        aggregate.unit_price = unit_price
        aggregate.placeholder_price = True
        aggregate.total_value = aggregate.total_kg * aggregate.unit_price
        heads += aggregate.heads
        total_kg += aggregate.total_kg
        total_value += aggregate.total_value
    return LivestockTotals(heads=heads, total_kg=total_kg, total_value=total_value, categories=categories)


def weighted_average_cost(receipts: Iterable[tuple[float | None, float | None]]) -> float:
    """Quantity-weighted mean unit cost over (quantity, unit_cost) receipts.

    Missing quantities or costs count as zero. Returns 0.0 when the receipts
    carry no quantity at all.
    """
    total_cost = 0.0
    total_units = 0.0
    for quantity, unit_cost in receipts:
        quantity = quantity or 0.0
        total_cost += quantity * (unit_cost or 0.0)
        total_units += quantity
    if total_units <= 0:
        return 0.0
    return total_cost / total_units


def value_inputs(items: Iterable[PricedInput]) -> InputTotals:
    """Group priced inputs by category; category value is Σ(stock × unit price)."""
    groups: dict[str, InputCategoryAggregate] = {}
    for item in items:
        category = item.category or UNCATEGORIZED
        aggregate = groups.get(category)
        if aggregate is None:
            aggregate = InputCategoryAggregate(category=category)
            groups[category] = aggregate
        value = item.stock * item.unit_price
        aggregate.items += 1
        aggregate.total_stock += item.stock
        aggregate.total_value += value

    categories = sorted(groups.values(), key=lambda a: a.category)
    return InputTotals(
        items=sum(a.items for a in categories),
        total_value=sum(a.total_value for a in categories),
        categories=categories,
    )
