import enum
import uuid
from datetime import date, datetime, timedelta

from sqlalchemy import func, select

from agroerp.audit import service
from agroerp.audit.models import AuditEntry, AuditEventType
from agroerp.audit.schemas import AuditFilter
from agroerp.core.pagination import PaginationParams


class _Color(enum.Enum):
    RED = "red"


async def test_record_audit_is_staged_until_commit(db, firm, session_factory):
    entry = service.record_audit(
        db,
        firm_id=firm.id,
        event_type=AuditEventType.GESTION_OPENED,
        description="Period opened",
        module="gestiones",
    )
    assert entry in db.new

    async with session_factory() as other:
        assert await other.scalar(select(func.count(AuditEntry.id))) == 0

    await db.commit()
    assert entry.user == service.SYSTEM_USER
    assert entry.event_type == "GESTION_OPENED"


def test_metadata_is_made_json_safe():
    ref = uuid.uuid4()
    converted = service._jsonable(
        {
            "id": ref,
            "when": date(2025, 1, 1),
            "at": datetime(2025, 1, 1, 12, 30),
            "color": _Color.RED,
            "nested": [{"id": ref}],
            "n": 3,
        }
    )
    assert converted == {
        "id": str(ref),
        "when": "2025-01-01",
        "at": "2025-01-01T12:30:00",
        "color": "red",
        "nested": [{"id": str(ref)}],
        "n": 3,
    }


async def _seed_entries(db, firm, other_firm):
    base = datetime(2025, 3, 10, 12, 0, 0)
    rows = [
        (firm, AuditEventType.GESTION_OPENED, "gestiones", "ana", base),
        (firm, AuditEventType.INVENTORY_VALUED, "valuation", "ana", base + timedelta(days=1)),
        (firm, AuditEventType.GESTION_CLOSED, "gestiones", "bruno", base + timedelta(days=5)),
        (other_firm, AuditEventType.GESTION_OPENED, "gestiones", "carla", base),
    ]
    for owner, event_type, module, user, created_at in rows:
        entry = service.record_audit(
            db,
            firm_id=owner.id,
            event_type=event_type,
            description=event_type.value,
            module=module,
            user=user,
        )
        entry.created_at = created_at
    await db.commit()


async def test_list_entries_newest_first_for_one_firm(db, firm, other_firm):
    await _seed_entries(db, firm, other_firm)

    entries, meta = await service.list_audit_entries(
        db, AuditFilter(firm_id=firm.id), PaginationParams()
    )

    assert [e.event_type for e in entries] == ["GESTION_CLOSED", "INVENTORY_VALUED", "GESTION_OPENED"]
    assert meta["total_count"] == 3
    assert meta["total_pages"] == 1


async def test_list_entries_filters(db, firm, other_firm):
    await _seed_entries(db, firm, other_firm)

    async def events(**kwargs):
        entries, _ = await service.list_audit_entries(
            db, AuditFilter(firm_id=firm.id, **kwargs), PaginationParams()
        )
        return [e.event_type for e in entries]

    assert await events(module="valuation") == ["INVENTORY_VALUED"]
    assert await events(event_type="GESTION_OPENED") == ["GESTION_OPENED"]
    assert await events(user="BRU") == ["GESTION_CLOSED"]
    assert await events(date_from=date(2025, 3, 11), date_to=date(2025, 3, 11)) == ["INVENTORY_VALUED"]
    assert await events(date_from=date(2025, 3, 12)) == ["GESTION_CLOSED"]


async def test_list_entries_paginates(db, firm, other_firm):
    await _seed_entries(db, firm, other_firm)

    entries, meta = await service.list_audit_entries(
        db, AuditFilter(firm_id=firm.id), PaginationParams(page=2, page_size=2)
    )

    assert [e.event_type for e in entries] == ["GESTION_OPENED"]
    assert meta == {"page": 2, "page_size": 2, "total_count": 3, "total_pages": 2}


async def test_facets_are_distinct_per_firm(db, firm, other_firm):
    await _seed_entries(db, firm, other_firm)

    assert await service.list_event_types(db, firm.id) == [
        "GESTION_CLOSED",
        "GESTION_OPENED",
        "INVENTORY_VALUED",
    ]
    assert await service.list_modules(db, firm.id) == ["gestiones", "valuation"]
    assert await service.list_users(db, firm.id) == ["ana", "bruno"]
    assert await service.list_users(db, other_firm.id) == ["carla"]


async def test_user_filter_matches_wildcards_literally(db, firm):
    for user in ("a_b", "axb", "100%", "1000"):
        service.record_audit(
            db,
            firm_id=firm.id,
            event_type=AuditEventType.GESTION_OPENED,
            description="Period opened",
            module="gestiones",
            user=user,
        )
    await db.commit()

    async def users(search):
        entries, _ = await service.list_audit_entries(
            db, AuditFilter(firm_id=firm.id, user=search), PaginationParams()
        )
        return sorted(e.user for e in entries)

    assert await users("a_b") == ["a_b"]
    assert await users("0%") == ["100%"]
    assert await users("A_") == ["a_b"]
