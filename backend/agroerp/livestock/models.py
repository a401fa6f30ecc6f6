"""SQLAlchemy models for animals, their categories and herd events."""

import enum
import uuid
from datetime import date

from sqlalchemy import Date, Enum, Float, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from agroerp.database import Base, TimestampMixin


class AnimalStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    SOLD = "SOLD"
    DEAD = "DEAD"
    TRANSFERRED = "TRANSFERRED"


class HerdEventType(str, enum.Enum):
    WEIGHING = "WEIGHING"
    BIRTH = "BIRTH"
    TREATMENT = "TREATMENT"
    CATEGORY_CHANGE = "CATEGORY_CHANGE"


class LivestockCategory(TimestampMixin, Base):
    __tablename__ = "livestock_categories"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    firm_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("firms.id", ondelete="CASCADE"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    code: Mapped[str | None] = mapped_column(String(20), nullable=True)


class Animal(TimestampMixin, Base):
    __tablename__ = "animals"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    premise_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("premises.id", ondelete="CASCADE"), nullable=False, index=True
    )
    current_category_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("livestock_categories.id", ondelete="SET NULL"), nullable=True, index=True
    )
    tag: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[AnimalStatus] = mapped_column(
        Enum(AnimalStatus), default=AnimalStatus.ACTIVE, nullable=False, index=True
    )
    initial_weight: Mapped[float | None] = mapped_column(Float, nullable=True)

    category: Mapped[LivestockCategory | None] = relationship(lazy="joined")


class HerdEvent(TimestampMixin, Base):
    __tablename__ = "herd_events"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    animal_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("animals.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event_type: Mapped[HerdEventType] = mapped_column(Enum(HerdEventType), nullable=False)
    event_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    qty_kg: Mapped[float | None] = mapped_column(Float, nullable=True)
