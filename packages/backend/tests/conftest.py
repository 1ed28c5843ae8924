"""Test fixtures — one in-memory SQLite database per test.

Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own engine on an in-memory SQLite database
   (StaticPool keeps the single connection alive) with all tables created.
2. The app's get_db dependency is overridden to hand out that session, so
   HTTP calls and direct service calls in a test see the same data.
3. Outbound email goes to a RecordingMailer the test can inspect.
"""

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from muster.config import Settings
from muster.db.engine import get_db
from muster.db.models import Base
from muster.main import create_app
from muster.services.account_service import AccountService
from muster.services.api_key_service import ApiKeyService
from muster.services.email_service import EmailDispatcher, EmailMessage

TEST_DB_URL = "sqlite+aiosqlite://"
PASSWORD = "correct-horse"


def make_settings(**overrides) -> Settings:
    values = {
        "database_url": TEST_DB_URL,
        "cookie_secret": "test-cookie-secret",
        "secure_cookie_flag": False,
        "app_url": "http://muster.test",
    }
    values.update(overrides)
    return Settings(**values)


class RecordingMailer:
    """Collects messages instead of sending them."""

    def __init__(self):
        self.sent: list[EmailMessage] = []

    async def deliver(self, message: EmailMessage) -> None:
        self.sent.append(message)

    def to(self, address: str) -> list[EmailMessage]:
        return [m for m in self.sent if m.to == address]


class FailingMailer:
    async def deliver(self, message: EmailMessage) -> None:
        raise ConnectionError("mail relay unreachable")


@pytest_asyncio.fixture()
async def db_session():
    engine = create_async_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session = AsyncSession(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()


@pytest_asyncio.fixture()
async def mailer():
    return RecordingMailer()


@pytest_asyncio.fixture()
async def settings():
    return make_settings()


@pytest_asyncio.fixture()
async def email(mailer, settings):
    return EmailDispatcher(mailer, settings.app_url)


@pytest_asyncio.fixture()
async def accounts(db_session, email):
    return AccountService(db_session, email)


@pytest_asyncio.fixture()
async def api_keys(db_session):
    return ApiKeyService(db_session)


@pytest_asyncio.fixture()
async def app(settings, db_session, email):
    """The real app, wired to the test database and recording mailer."""
    application = create_app(settings)
    application.state.email = email

    async def override_get_db():
        yield db_session

    application.dependency_overrides[get_db] = override_get_db
    yield application
    application.dependency_overrides.clear()
    await application.state.engine.dispose()


@pytest_asyncio.fixture()
async def client(app):
    """HTTP client; keeps cookies between requests like a browser."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture()
async def enlist(client):
    """Enlist through the API; the client ends up holding the session."""

    async def _enlist(email: str, name: str = "Test Member", password: str = PASSWORD):
        r = await client.post(
            "/api/v1/auth/enlist",
            json={
                "name": name,
                "email": email,
                "password1": password,
                "password2": password,
            },
        )
        assert r.status_code == 201, r.text
        return r.json()

    return _enlist
