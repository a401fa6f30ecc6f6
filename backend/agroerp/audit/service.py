"""Audit log writer and readers.

``record_audit`` only stages the entry on the caller's session. The caller
commits it together with the state change it describes, so a transition and
its audit entry are persisted atomically or not at all.
"""

import enum
import logging
import uuid
from datetime import datetime, time, timedelta, timezone
from typing import Any

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from agroerp.audit.models import AuditEntry, AuditEventType
from agroerp.audit.schemas import AuditFilter
from agroerp.core.pagination import PaginationParams, build_pagination_meta

logger = logging.getLogger(__name__)

SYSTEM_USER = "system"


def record_audit(
    db: AsyncSession,
    *,
    firm_id: uuid.UUID,
    event_type: AuditEventType | str,
    description: str,
    module: str,
    user: uuid.UUID | str | None = None,
    reference: uuid.UUID | str | None = None,
    metadata: dict[str, Any] | None = None,
) -> AuditEntry:
    entry = AuditEntry(
        firm_id=firm_id,
        event_type=event_type.value if isinstance(event_type, AuditEventType) else event_type,
        description=description,
        module=module,
        user=str(user) if user is not None else SYSTEM_USER,
        reference=str(reference) if reference is not None else None,
        details=_jsonable(metadata or {}),
    )
    db.add(entry)
    logger.debug("Audit %s staged for firm %s (ref %s)", entry.event_type, firm_id, reference)
    return entry


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, enum.Enum):
        return value.value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


def _apply_filters(query, filters: AuditFilter):
    query = query.where(AuditEntry.firm_id == filters.firm_id)
    if filters.date_from is not None:
        query = query.where(
            AuditEntry.created_at >= datetime.combine(filters.date_from, time.min, tzinfo=timezone.utc)
        )
    if filters.date_to is not None:
        upper = datetime.combine(filters.date_to + timedelta(days=1), time.min, tzinfo=timezone.utc)
        query = query.where(AuditEntry.created_at < upper)
    if filters.event_type:
        query = query.where(AuditEntry.event_type == filters.event_type)
    if filters.module:
        query = query.where(AuditEntry.module == filters.module)
    if filters.user:
        query = query.where(AuditEntry.user.icontains(filters.user, autoescape=True))
    return query


async def list_audit_entries(
    db: AsyncSession,
    filters: AuditFilter,
    pagination: PaginationParams,
) -> tuple[list[AuditEntry], dict]:
    """Return audit entries for a firm, newest first, with pagination meta."""
    total = await db.scalar(_apply_filters(select(func.count(AuditEntry.id)), filters)) or 0
    result = await db.execute(
        _apply_filters(select(AuditEntry), filters)
        .order_by(AuditEntry.created_at.desc(), AuditEntry.id)
        .offset(pagination.offset)
        .limit(pagination.limit)
    )
    return list(result.scalars().all()), build_pagination_meta(total, pagination)


async def _distinct_values(db: AsyncSession, firm_id: uuid.UUID, column) -> list[str]:
    result = await db.execute(
        select(distinct(column)).where(AuditEntry.firm_id == firm_id, column.is_not(None)).order_by(column)
    )
    return [value for value in result.scalars().all() if value]


async def list_event_types(db: AsyncSession, firm_id: uuid.UUID) -> list[str]:
    return await _distinct_values(db, firm_id, AuditEntry.event_type)


async def list_modules(db: AsyncSession, firm_id: uuid.UUID) -> list[str]:
    return await _distinct_values(db, firm_id, AuditEntry.module)


async def list_users(db: AsyncSession, firm_id: uuid.UUID) -> list[str]:
    return await _distinct_values(db, firm_id, AuditEntry.user)
