"""Shared fixtures: in-memory database, seeded firm/premise/users, HTTP client."""

import uuid
from datetime import date, datetime

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

import agroerp.models  # noqa: F401
from agroerp.auth.models import Role, User
from agroerp.auth.service import Principal
from agroerp.auth.utils import create_access_token, hash_password
from agroerp.config import Settings
from agroerp.core.cache import report_cache
from agroerp.database import Base, build_engine, build_session_factory
from agroerp.firms.models import Firm, Premise, UserFirmAccess
from agroerp.gestiones.models import Campaign, PeriodStatus
from agroerp.main import create_app
from agroerp.works.models import WORK_MODELS, WorkKind, WorkStatus

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "secret123"


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        database_url=TEST_DATABASE_URL,
        secret_key="test-secret",
        log_level="WARNING",
    )


@pytest.fixture
async def engine():
    engine = build_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def clear_report_cache():
    report_cache.clear()
    yield
    report_cache.clear()


@pytest.fixture
async def firm(db):
    firm = Firm(name="Estancia La Esperanza", tax_id="30-71234567-8")
    db.add(firm)
    await db.commit()
    return firm


@pytest.fixture
async def other_firm(db):
    firm = Firm(name="Agro Vecino SA")
    db.add(firm)
    await db.commit()
    return firm


@pytest.fixture
async def premise(db, firm):
    premise = Premise(firm_id=firm.id, name="Campo Norte")
    db.add(premise)
    await db.commit()
    return premise


@pytest.fixture
def make_user(db):
    async def _make(email: str, role: Role) -> User:
        user = User(
            email=email,
            hashed_password=hash_password(TEST_PASSWORD),
            full_name=email.split("@")[0].title(),
            role=role,
        )
        db.add(user)
        await db.commit()
        return user

    return _make


@pytest.fixture
async def admin(db, firm, make_user):
    user = await make_user("admin@example.com", Role.ADMIN)
    db.add(UserFirmAccess(user_id=user.id, firm_id=firm.id))
    await db.commit()
    return user


@pytest.fixture
async def operator(db, firm, make_user):
    user = await make_user("operator@example.com", Role.OPERATOR)
    db.add(UserFirmAccess(user_id=user.id, firm_id=firm.id))
    await db.commit()
    return user


@pytest.fixture
def principal(admin, firm):
    return Principal(user_id=admin.id, firm_ids=frozenset({firm.id}))


@pytest.fixture
def outsider(other_firm):
    """Authenticated caller with access to a different firm only."""
    return Principal(user_id=uuid.uuid4(), firm_ids=frozenset({other_firm.id}))


@pytest.fixture
async def period(db, firm):
    period = Campaign(
        firm_id=firm.id,
        name="Gestión 2025/2025",
        start_date=date(2025, 1, 1),
        end_date=date(2025, 12, 31),
        status=PeriodStatus.ACTIVE,
        is_locked=False,
    )
    db.add(period)
    await db.commit()
    return period


@pytest.fixture
def make_work(db, firm):
    async def _make(period, kind=WorkKind.AGRICULTURAL, status=WorkStatus.IN_PROGRESS):
        work = WORK_MODELS[kind](
            firm_id=firm.id,
            campaign_id=period.id,
            work_type="siembra" if kind == WorkKind.AGRICULTURAL else "vacunación",
            work_date=date(2025, 3, 15),
            status=status,
        )
        db.add(work)
        await db.commit()
        return work

    return _make


@pytest.fixture
def created_long_ago():
    return datetime(2024, 1, 1, 8, 0, 0)


@pytest.fixture
async def client(settings, session_factory):
    app = create_app(settings)
    app.state.session_factory = session_factory
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers(settings):
    def _headers(user: User) -> dict:
        token = create_access_token(user.id, user.role.value, settings)
        return {"Authorization": f"Bearer {token}"}

    return _headers
