"""Pydantic schemas for the audit log."""

import uuid
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel


class AuditFilter(BaseModel):
    firm_id: uuid.UUID
    date_from: date | None = None
    date_to: date | None = None
    event_type: str | None = None
    module: str | None = None
    user: str | None = None


class AuditEntryResponse(BaseModel):
    id: uuid.UUID
    firm_id: uuid.UUID
    event_type: str
    description: str
    module: str
    user: str
    reference: str | None
    details: dict[str, Any]
    created_at: datetime

    model_config = {"from_attributes": True}
