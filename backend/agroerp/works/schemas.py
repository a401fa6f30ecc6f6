import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field

from agroerp.works.models import WorkStatus


class WorkCreate(BaseModel):
    campaign_id: uuid.UUID
    premise_id: uuid.UUID | None = None
    work_type: str = Field(min_length=1, max_length=100)
    work_date: date
    status: WorkStatus = WorkStatus.DRAFT
    description: str | None = None


class WorkStatusUpdate(BaseModel):
    status: WorkStatus


class WorkResponse(BaseModel):
    id: uuid.UUID
    firm_id: uuid.UUID
    campaign_id: uuid.UUID
    premise_id: uuid.UUID | None
    work_type: str
    work_date: date
    status: WorkStatus
    description: str | None
    created_by: uuid.UUID | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
