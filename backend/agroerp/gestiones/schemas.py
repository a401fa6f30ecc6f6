"""Pydantic schemas for period (gestión) lifecycle operations."""

import uuid
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator

from agroerp.gestiones.models import PeriodStatus
from agroerp.valuation.models import ValuationMethod


class PeriodOpen(BaseModel):
    firm_id: uuid.UUID
    start_date: date
    end_date: date
    name: str | None = Field(None, max_length=255)
    notes: str | None = None
    carry_forward_inventory: bool = False

    @model_validator(mode="after")
    def check_dates(self) -> "PeriodOpen":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class PeriodClose(BaseModel):
    valuation_method: ValuationMethod = ValuationMethod.WEIGHTED_AVG
    notes: str | None = None
    generate_final_valuation: bool = False


class PeriodReopen(BaseModel):
    # Emptiness is checked by the service so it reports MISSING_REOPEN_REASON.
    reopen_reason: str = ""


class AdjustmentCreate(BaseModel):
    adjustment_type: str = Field(min_length=1, max_length=50)
    description: str = ""
    old_value: Any | None = None
    new_value: Any | None = None
    reference_table: str | None = Field(None, max_length=100)
    reference_id: str | None = Field(None, max_length=64)


class PeriodResponse(BaseModel):
    id: uuid.UUID
    firm_id: uuid.UUID
    name: str
    start_date: date
    end_date: date
    status: PeriodStatus
    is_locked: bool
    notes: str | None
    closed_by: uuid.UUID | None
    closed_at: datetime | None
    closed_notes: str | None
    reopened_by: uuid.UUID | None
    reopened_at: datetime | None
    reopen_reason: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AdjustmentResponse(BaseModel):
    id: uuid.UUID
    campaign_id: uuid.UUID
    adjustment_type: str
    description: str
    adjustment_date: date
    old_value: Any | None
    new_value: Any | None
    reference_table: str | None
    reference_id: str | None
    created_by: uuid.UUID | None
    created_at: datetime

    model_config = {"from_attributes": True}


class PreCloseReport(BaseModel):
    campaign_id: uuid.UUID
    can_close: bool
    errors: list[str]
