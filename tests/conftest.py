"""
Shared test fixtures and configuration for entire test suite.

Provides: In-memory async database, session factory, cipher, publisher mock,
wired services, and small helpers for seeding sessions
Dependencies: pytest, sqlalchemy, aiosqlite
System role: Test infrastructure and fixture management
"""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from companion_chat.application.services import MessageService, SessionService
from companion_chat.boundary.crypto.content_cipher import ContentCipher
from companion_chat.boundary.db.base import Base
from companion_chat.boundary.db.CRUD.chat_session_crud import chat_session_crud
from companion_chat.boundary.db.models.chat_session_model import (
    ChatSessionModel,
    SessionStatus,
)

TEST_ENCRYPTION_KEY = "ab" * 32


@pytest.fixture
async def test_engine():
    """
    Create in-memory SQLite async engine with all tables.

    Foreign keys are switched on so ON DELETE CASCADE behaves like PostgreSQL.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def test_session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest.fixture
async def test_async_db(test_session_factory):
    """
    Create in-memory SQLite async database session for testing.

    Yields:
        AsyncSession: Test database session with cleanup
    """
    async with test_session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def cipher() -> ContentCipher:
    """Content cipher with a fixed hex key."""
    return ContentCipher(TEST_ENCRYPTION_KEY)


@pytest.fixture
def mock_publisher() -> AsyncMock:
    """Event publisher mock; publish returns a fake SQS message id."""
    publisher = AsyncMock()
    publisher.publish = AsyncMock(return_value="sqs-message-id")
    return publisher


@pytest.fixture
def session_service(test_async_db) -> SessionService:
    """SessionService on the test database."""
    return SessionService(db=test_async_db, max_attempts=3)


@pytest.fixture
def message_service(test_async_db, cipher, mock_publisher, session_service) -> MessageService:
    """MessageService on the test database sharing the session service."""
    return MessageService(
        db=test_async_db,
        cipher=cipher,
        publisher=mock_publisher,
        session_service=session_service,
    )


@pytest.fixture
def user_id() -> str:
    return "student-123"


@pytest.fixture
def seed_session(test_async_db):
    """Return a coroutine inserting a committed session directly in a given status."""

    async def _seed(
        user_id: str,
        status: SessionStatus = SessionStatus.ACTIVE,
    ) -> ChatSessionModel:
        db = test_async_db
        session = await chat_session_crud.create_for_user(db, user_id)
        if status != SessionStatus.ACTIVE:
            session = await chat_session_crud.compare_and_set_status(
                db, session.id, user_id, session.version, status
            )
        await db.commit()
        return session

    return _seed
