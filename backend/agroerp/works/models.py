"""SQLAlchemy models for agricultural and livestock work records."""

import enum
import uuid
from datetime import date

from sqlalchemy import Date, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from agroerp.database import Base, TimestampMixin


class WorkStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    IN_PROGRESS = "IN_PROGRESS"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"


# Statuses that do not block closing the owning period.
SETTLED_WORK_STATUSES = (WorkStatus.APPROVED, WorkStatus.CLOSED, WorkStatus.CANCELLED)


class WorkKind(str, enum.Enum):
    AGRICULTURAL = "agricultural"
    LIVESTOCK = "livestock"


class _WorkRecordMixin(TimestampMixin):
    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    firm_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("firms.id", ondelete="CASCADE"), nullable=False, index=True
    )
    campaign_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True
    )
    premise_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("premises.id", ondelete="SET NULL"), nullable=True
    )
    work_type: Mapped[str] = mapped_column(String(100), nullable=False)
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[WorkStatus] = mapped_column(
        Enum(WorkStatus), default=WorkStatus.DRAFT, nullable=False, index=True
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )


class AgriculturalWork(_WorkRecordMixin, Base):
    __tablename__ = "agricultural_works"


class LivestockWork(_WorkRecordMixin, Base):
    __tablename__ = "livestock_works"


WORK_MODELS = {
    WorkKind.AGRICULTURAL: AgriculturalWork,
    WorkKind.LIVESTOCK: LivestockWork,
}
