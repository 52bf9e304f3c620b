"""
Pytest configuration and fixtures for gatekeeper tests.

Every test gets a fresh SQLite in-memory database (aiosqlite +
StaticPool so all sessions see the same data), frozen settings and a
controllable clock.  HTTP tests talk to the real app through
httpx's ASGITransport with the dependencies overridden.
"""

import os
from datetime import datetime, timedelta, timezone

# Point the module-level engine at SQLite before the app is imported.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import func, select  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from gatekeeper.core.config import DevicePolicy, Settings, WindowCheckOrder  # noqa: E402
from gatekeeper.core.database import get_session_factory  # noqa: E402
from gatekeeper.dependencies import get_clock, get_settings  # noqa: E402
from gatekeeper.main import app  # noqa: E402
from gatekeeper.models import ActiveSession, Base, LoginAttempt, User  # noqa: E402
from gatekeeper.services.access_gate import AccessGate  # noqa: E402
from gatekeeper.services.access_window import AccessWindowEvaluator  # noqa: E402
from gatekeeper.services.audit_service import AttemptLogger  # noqa: E402
from gatekeeper.services.credential_service import CredentialVerifier  # noqa: E402
from gatekeeper.services.device_service import DeviceAuthorizer  # noqa: E402
from gatekeeper.services.session_service import SessionManager  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite://"
ALLOWED_IP = "200.10.20.30"

# Brasília is UTC-3 all year round.
WEDNESDAY_10H = datetime(2026, 10, 14, 13, 0, tzinfo=timezone.utc)
WEDNESDAY_17H = datetime(2026, 10, 14, 20, 0, tzinfo=timezone.utc)
SATURDAY_10H = datetime(2026, 10, 17, 13, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when a test says so."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now += timedelta(**delta)


# ── Settings / clock ─────────────────────────────────────────────────


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(WEDNESDAY_10H)


@pytest.fixture
def device_policy() -> DevicePolicy:
    return DevicePolicy.LENIENT


@pytest.fixture
def window_order() -> WindowCheckOrder:
    return WindowCheckOrder.BEFORE_PASSWORD


@pytest.fixture
def settings(device_policy, window_order) -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL=TEST_DATABASE_URL,
        ALLOWED_IPS=ALLOWED_IP,
        DEVICE_POLICY=device_policy,
        ACCESS_WINDOW_CHECK=window_order,
        STORE_TIMEOUT_SECONDS=5.0,
    )


# ── Database ─────────────────────────────────────────────────────────


@pytest.fixture
async def engine():
    """Fresh in-memory schema per test."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(session_factory):
    """Factory inserting a user and returning it."""

    async def _make(
        username: str = "alice",
        password: str = "s3nha",
        name: str = "Alice Souza",
        is_admin: bool = False,
        is_active: bool = True,
    ) -> User:
        async with session_factory() as session:
            user = User(
                username=username,
                password=password,
                name=name,
                is_admin=is_admin,
                is_active=is_active,
            )
            session.add(user)
            await session.commit()
            return user

    return _make


@pytest.fixture
def count_rows(session_factory):
    """Count rows of a model, optionally filtered."""

    async def _count(model, *criteria) -> int:
        async with session_factory() as session:
            stmt = select(func.count()).select_from(model)
            if criteria:
                stmt = stmt.where(*criteria)
            return (await session.execute(stmt)).scalar_one()

    return _count


@pytest.fixture
def fetch_attempts(session_factory):
    async def _fetch() -> list[LoginAttempt]:
        async with session_factory() as session:
            result = await session.execute(select(LoginAttempt).order_by(LoginAttempt.timestamp))
            return list(result.scalars().all())

    return _fetch


@pytest.fixture
def fetch_sessions(session_factory):
    async def _fetch(*criteria) -> list[ActiveSession]:
        async with session_factory() as session:
            stmt = select(ActiveSession)
            if criteria:
                stmt = stmt.where(*criteria)
            result = await session.execute(stmt)
            return list(result.scalars().all())

    return _fetch


# ── Components ───────────────────────────────────────────────────────


@pytest.fixture
def access_window(settings, clock) -> AccessWindowEvaluator:
    return AccessWindowEvaluator(settings, clock)


@pytest.fixture
def session_manager(settings, access_window, clock) -> SessionManager:
    return SessionManager(settings, access_window, clock)


@pytest.fixture
def attempt_logger(settings, session_factory, clock) -> AttemptLogger:
    return AttemptLogger(settings, session_factory, clock)


@pytest.fixture
def device_authorizer(settings, clock) -> DeviceAuthorizer:
    return DeviceAuthorizer(settings, clock)


@pytest.fixture
def credential_verifier(settings) -> CredentialVerifier:
    return CredentialVerifier(settings)


@pytest.fixture
def gate(
    settings,
    credential_verifier,
    device_authorizer,
    session_manager,
    access_window,
    attempt_logger,
) -> AccessGate:
    return AccessGate(
        settings,
        credentials=credential_verifier,
        devices=device_authorizer,
        sessions=session_manager,
        access_window=access_window,
        attempts=attempt_logger,
    )


# ── HTTP ─────────────────────────────────────────────────────────────


@pytest.fixture
async def client(settings, session_factory, clock):
    """API client whose requests come from the allowed address."""
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_clock] = lambda: clock
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Forwarded-For": ALLOWED_IP, "User-Agent": "pytest-browser/1.0"},
    ) as test_client:
        yield test_client
    app.dependency_overrides.clear()
