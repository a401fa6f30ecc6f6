"""SQLAlchemy model for the append-only audit log."""

import enum
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from agroerp.database import Base, JSONDocument


class AuditEventType(str, enum.Enum):
    GESTION_OPENED = "GESTION_OPENED"
    GESTION_CLOSED = "GESTION_CLOSED"
    GESTION_REOPENED = "GESTION_REOPENED"
    GESTION_ADJUSTED = "GESTION_ADJUSTED"
    INVENTORY_VALUED = "INVENTORY_VALUED"
    INVENTORY_CARRIED_FORWARD = "INVENTORY_CARRIED_FORWARD"


class AuditEntry(Base):
    __tablename__ = "audit"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    firm_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("firms.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event_type: Mapped[str] = mapped_column("tipo", String(50), nullable=False, index=True)
    description: Mapped[str] = mapped_column("descripcion", Text, nullable=False)
    module: Mapped[str] = mapped_column("modulo_origen", String(50), nullable=False)
    user: Mapped[str] = mapped_column("usuario", String(255), nullable=False)
    reference: Mapped[str | None] = mapped_column("referencia", String(64), nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONDocument, nullable=False, default=dict
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )
