"""Pydantic schemas for inventory valuation."""

import uuid
from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from agroerp.valuation.models import InventoryScope, ValuationMethod, ValuationType


class ValuationRequest(BaseModel):
    premise_id: uuid.UUID
    valuation_date: date
    kind: Literal["livestock", "inputs", "both"] = "both"
    method: ValuationMethod = ValuationMethod.WEIGHTED_AVG
    pricing_source: str | None = Field(None, max_length=100)
    campaign_id: uuid.UUID | None = None
    valuation_type: ValuationType = ValuationType.INITIAL


class ValuationResponse(BaseModel):
    id: uuid.UUID
    firm_id: uuid.UUID
    premise_id: uuid.UUID
    campaign_id: uuid.UUID | None
    valuation_date: date
    valuation_type: ValuationType
    scope: InventoryScope
    valuation_method: ValuationMethod
    pricing_source: str | None
    livestock_total_heads: int
    livestock_total_kg: float
    livestock_total_value: float
    livestock_by_category: list[dict[str, Any]]
    inputs_total_items: int
    inputs_total_value: float
    inputs_by_category: list[dict[str, Any]]
    uses_placeholder_prices: bool
    created_by: uuid.UUID | None
    notes: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ValuationTotals(BaseModel):
    livestock_total_heads: int = 0
    livestock_total_kg: float = 0.0
    livestock_total_value: float = 0.0
    inputs_total_items: int = 0
    inputs_total_value: float = 0.0
    total_value: float = 0.0
    uses_placeholder_prices: bool = False
    valuation_ids: list[uuid.UUID] = Field(default_factory=list)


class ValuationSummary(BaseModel):
    campaign_id: uuid.UUID
    initial: ValuationTotals
    final: ValuationTotals
