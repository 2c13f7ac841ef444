"""
Pytest configuration and shared fixtures for the Studio Booking API tests.

Provides an in-memory SQLite session, an httpx client bound to the app via
ASGITransport (same event loop as the session), real gateway/email clients
configured with test keys, and a fake spreadsheet client.
"""
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from datetime import datetime, timedelta
from typing import AsyncGenerator

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from config import settings
from database import Base, get_db
from deps import get_email_client, get_midtrans_client, get_sheets_client, get_xendit_client
from exceptions import SheetsAccessError
from main import app
from middleware.rate_limit import limiter
from services.email_service import EmailClient
from services.midtrans_service import MidtransClient
from services.xendit_service import XenditClient

# ── Test Configuration ───────────────────────────────────────────────

TEST_MIDTRANS_SERVER_KEY = "SB-Mid-server-test-key"
TEST_XENDIT_WEBHOOK_TOKEN = "xnd-callback-token-test"
TEST_CRON_SECRET = "cron-secret-test"
TEST_WHATSAPP_VERIFY_TOKEN = "whatsapp-verify-test"


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """Secrets that would normally come from .env."""
    monkeypatch.setattr(settings, "jwt_secret", "test-jwt-secret-for-pytest-only")
    monkeypatch.setattr(settings, "cron_secret", TEST_CRON_SECRET)
    monkeypatch.setattr(settings, "whatsapp_verify_token", TEST_WHATSAPP_VERIFY_TOKEN)
    monkeypatch.setattr(settings, "google_sheet_id", "sheet-default")
    return settings


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    limiter.reset()
    yield
    limiter.reset()


# ── Database Fixtures ────────────────────────────────────────────────


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create an in-memory SQLite database session for each test.

    Uses StaticPool to allow in-memory SQLite with async SQLAlchemy.
    """
    import db_models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session

    await engine.dispose()


# ── Client Fixtures ──────────────────────────────────────────────────


class FakeSheetsClient:
    """Serves ranges from a dict keyed by sheet name ("MONDAY", "CONFIGURATION")."""

    def __init__(self, sheets: dict | None = None, failing: set | None = None):
        self.sheets = sheets or {}
        self.failing = failing or set()
        self.calls: list[tuple[str, str]] = []

    async def read_range(self, spreadsheet_id: str, range_: str) -> list[list]:
        self.calls.append((spreadsheet_id, range_))
        name = range_.split("!", 1)[0]
        if name in self.failing:
            raise SheetsAccessError(f"Unable to parse range: {range_}")
        return self.sheets.get(name, [])


@pytest.fixture
def midtrans_client() -> MidtransClient:
    return MidtransClient(server_key=TEST_MIDTRANS_SERVER_KEY, app_url="http://localhost:3000")


@pytest.fixture
def xendit_client() -> XenditClient:
    return XenditClient(
        secret_key="xnd_development_test",
        webhook_token=TEST_XENDIT_WEBHOOK_TOKEN,
        app_url="http://localhost:3000",
        studio_name="Test Studio",
    )


@pytest.fixture
def email_client() -> EmailClient:
    return EmailClient(
        api_key="re_test_key",
        from_email="Test Studio <test@example.com>",
        app_url="http://localhost:3000",
        studio_name="Test Studio",
    )


@pytest.fixture
def sheets_client() -> FakeSheetsClient:
    return FakeSheetsClient()


@pytest.fixture(scope="function")
async def api_client(
    db_session: AsyncSession,
    midtrans_client,
    xendit_client,
    email_client,
    sheets_client,
) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx client driving the app in-process.

    Overrides the DB session and every outbound client; lifespan does not
    run under ASGITransport.
    """
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_midtrans_client] = lambda: midtrans_client
    app.dependency_overrides[get_xendit_client] = lambda: xendit_client
    app.dependency_overrides[get_email_client] = lambda: email_client
    app.dependency_overrides[get_sheets_client] = lambda: sheets_client

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ── Test Data Fixtures ────────────────────────────────────────────────


@pytest.fixture
async def sample_profile(db_session: AsyncSession):
    from db_models import Profile

    profile = Profile(
        id="11111111-aaaa-bbbb-cccc-000000000001",
        email="Sari@Example.com",
        full_name="Sari Dewi",
        phone_number="+62 812-3456-7890",
    )
    db_session.add(profile)
    await db_session.commit()
    return profile


@pytest.fixture
async def sample_coach(db_session: AsyncSession):
    from db_models import Coach

    coach = Coach(id=1, name="Rina")
    db_session.add(coach)
    await db_session.commit()
    return coach


@pytest.fixture
async def sample_class(db_session: AsyncSession, sample_coach):
    from db_models import StudioClass

    start = datetime(2026, 1, 5, 8, 0)
    studio_class = StudioClass(
        id="22222222-aaaa-bbbb-cccc-000000000001",
        title="Reformer With Rina",
        class_type="reformer",
        coach_id=sample_coach.id,
        location="Tasikmalaya",
        start_time=start,
        end_time=start + timedelta(minutes=60),
        capacity=6,
        price=150000,
    )
    db_session.add(studio_class)
    await db_session.commit()
    return studio_class


@pytest.fixture
async def sample_booking(db_session: AsyncSession, sample_profile, sample_class):
    from db_models import Booking

    booking = Booking(
        id="33333333-aaaa-bbbb-cccc-000000000001",
        user_id=sample_profile.id,
        class_id=sample_class.id,
        status="pending_payment",
        payment_status="pending",
    )
    db_session.add(booking)
    await db_session.commit()
    return booking


@pytest.fixture
async def sample_package_type(db_session: AsyncSession):
    from db_models import PackageType

    package_type = PackageType(
        id="44444444-aaaa-bbbb-cccc-000000000001",
        name="10 Class Pack",
        class_credits=10,
        validity_days=60,
        price=1_200_000,
        location="Tasikmalaya",
    )
    db_session.add(package_type)
    await db_session.commit()
    return package_type
