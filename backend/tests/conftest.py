"""Shared test configuration and fixtures.

Uses a transactional rollback strategy per test for full isolation:
- Each test runs inside an outer transaction that rolls back afterwards.
- Service commits only release a SAVEPOINT, so they never escape the test.

The database comes from ``TEST_DATABASE_URL`` and defaults to a local
SQLite file. Point it at PostgreSQL to run the suite against the real
row-locking path.
"""

import os

os.environ.setdefault("TEST_DATABASE_URL", "sqlite+aiosqlite:///./booka_test.db")
os.environ["DATABASE_URL"] = os.environ["TEST_DATABASE_URL"]
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RESEND_API_KEY", "")

import uuid  # noqa: E402
from collections.abc import AsyncGenerator  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession  # noqa: E402

from booka.auth.jwt import create_token_pair  # noqa: E402
from booka.auth.passwords import hash_password  # noqa: E402
from booka.database import Base, build_engine, get_db  # noqa: E402
from booka.main import app  # noqa: E402
from booka.models.room import Room  # noqa: E402
from booka.models.user import User  # noqa: E402
from booka.notifications.sender import get_notification_sender  # noqa: E402

TEST_DATABASE_URL = os.environ["TEST_DATABASE_URL"]


def pytest_collection_modifyitems(items):
    """Run every async test on the session event loop shared with the engine."""
    session_marker = pytest.mark.asyncio(loop_scope="session")
    for item in items:
        if pytest_asyncio.is_async_test(item):
            item.add_marker(session_marker, append=False)


# ---------------------------------------------------------------------------
# Session-scoped: create / drop all tables once per test session
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a session-scoped engine tied to the session event loop."""
    engine = build_engine(TEST_DATABASE_URL, echo=False)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def setup_test_db(test_engine: AsyncEngine):
    """Create all tables at the start of the session and drop them at the end."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# ---------------------------------------------------------------------------
# Per-test: transactional rollback for isolation
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def db_session(test_engine: AsyncEngine, setup_test_db) -> AsyncGenerator[AsyncSession, None]:
    """Yield a session whose commits become savepoints inside a rolled-back transaction."""
    async with test_engine.connect() as connection:
        transaction = await connection.begin()
        session = AsyncSession(
            bind=connection,
            expire_on_commit=False,
            join_transaction_mode="create_savepoint",
        )

        try:
            yield session
        finally:
            await session.close()
            await transaction.rollback()


class RecordingTransport:
    """Email transport double that keeps every message it is handed."""

    def __init__(self) -> None:
        self.sent = []

    async def send(self, message) -> None:
        self.sent.append(message)


@pytest.fixture
def outbox() -> RecordingTransport:
    return RecordingTransport()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, outbox: RecordingTransport) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to the test session and a recording mailer."""
    from booka.notifications.sender import NotificationSender

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_sender] = lambda: NotificationSender(
        outbox, max_attempts=1, backoff_seconds=0
    )

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Convenience fixtures: users and rooms
# ---------------------------------------------------------------------------


async def make_user(db: AsyncSession, role: str = "guest", password: str = "testpass123") -> User:
    unique = uuid.uuid4().hex[:8]
    user = User(
        email=f"{role}-{unique}@test.com",
        hashed_password=hash_password(password),
        name=f"Test {role.title()}",
        is_active=True,
        role=role,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def make_room(db: AsyncSession, **overrides) -> Room:
    data = {
        "name": f"Room {uuid.uuid4().hex[:6]}",
        "description": "A test room.",
        "location": "Lisbon, Portugal",
        "capacity": 2,
        "price_per_night": Decimal("100.00"),
        "amenities": {"wifi": True, "ac": True},
        "images": [],
        "status": "available",
    }
    data.update(overrides)
    room = Room(**data)
    db.add(room)
    await db.commit()
    await db.refresh(room)
    return room


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create and return a guest user directly in the DB."""
    return await make_user(db_session)


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    """A second guest, for ownership checks."""
    return await make_user(db_session)


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, role="admin")


def bearer(user: User) -> dict[str, str]:
    tokens = create_token_pair(str(user.id))
    return {"Authorization": f"Bearer {tokens['access_token']}"}


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict[str, str]:
    """Return Authorization headers for the test user."""
    return bearer(test_user)


@pytest_asyncio.fixture
async def other_headers(other_user: User) -> dict[str, str]:
    return bearer(other_user)


@pytest_asyncio.fixture
async def admin_headers(admin_user: User) -> dict[str, str]:
    return bearer(admin_user)


@pytest_asyncio.fixture
async def test_room(db_session: AsyncSession) -> Room:
    """An available room at 100.00 per night."""
    return await make_room(db_session)
