"""SQLAlchemy models for consumable inputs and their stock movements."""

import enum
import uuid
from datetime import date

from sqlalchemy import Date, Enum, Float, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from agroerp.database import Base, TimestampMixin


class MovementType(str, enum.Enum):
    ENTRY = "entry"
    PURCHASE = "purchase"
    EXIT = "exit"
    ADJUSTMENT = "adjustment"


# Receipts that carry an acquisition cost.
RECEIPT_MOVEMENT_TYPES = (MovementType.ENTRY, MovementType.PURCHASE)


class Input(TimestampMixin, Base):
    __tablename__ = "inputs"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    premise_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("premises.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    unit: Mapped[str | None] = mapped_column(String(20), nullable=True)
    current_stock: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    unit_price: Mapped[float | None] = mapped_column(Float, nullable=True)


class InputMovement(TimestampMixin, Base):
    __tablename__ = "input_movements"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    input_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("inputs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    movement_type: Mapped[MovementType] = mapped_column(
        Enum(MovementType, values_callable=lambda e: [m.value for m in e]), nullable=False
    )
    quantity: Mapped[float | None] = mapped_column(Float, nullable=True)
    unit_cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    movement_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
