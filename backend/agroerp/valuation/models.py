"""SQLAlchemy model for the append-only inventory valuation history."""

import enum
import uuid
from datetime import date
from typing import Any

from sqlalchemy import Boolean, Date, Enum, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from agroerp.database import Base, JSONDocument, TimestampMixin


class ValuationType(str, enum.Enum):
    INITIAL = "INITIAL"
    FINAL = "FINAL"


class ValuationMethod(str, enum.Enum):
    WEIGHTED_AVG = "weighted_avg"
    HISTORICAL = "historical"
    MARKET = "market"
    MIXED = "mixed"


class InventoryScope(str, enum.Enum):
    LIVESTOCK = "livestock"
    INPUTS = "inputs"


class InventoryValuation(TimestampMixin, Base):
    __tablename__ = "inventory_valuations"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    firm_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("firms.id", ondelete="CASCADE"), nullable=False, index=True
    )
    premise_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("premises.id", ondelete="CASCADE"), nullable=False, index=True
    )
    campaign_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("campaigns.id", ondelete="SET NULL"), nullable=True, index=True
    )
    valuation_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    valuation_type: Mapped[ValuationType] = mapped_column(Enum(ValuationType), nullable=False)
    scope: Mapped[InventoryScope] = mapped_column(
        Enum(InventoryScope, values_callable=lambda e: [m.value for m in e]), nullable=False
    )
    valuation_method: Mapped[ValuationMethod] = mapped_column(
        Enum(ValuationMethod, values_callable=lambda e: [m.value for m in e]), nullable=False
    )
    pricing_source: Mapped[str | None] = mapped_column(String(100), nullable=True)

    livestock_total_heads: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    livestock_total_kg: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    livestock_total_value: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    livestock_by_category: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONDocument, default=list, nullable=False
    )

    inputs_total_items: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    inputs_total_value: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    inputs_by_category: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONDocument, default=list, nullable=False
    )

    uses_placeholder_prices: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def total_value(self) -> float:
        return self.livestock_total_value + self.inputs_total_value
