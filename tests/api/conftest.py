"""
Fixtures for API tests.

Routes run against mocked services; authentication is overridden with a
fixed student unless a test exercises the real token check.
"""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from companion_chat.api.deps import (
    AuthenticatedUser,
    get_current_user,
    get_message_service,
    get_session_service,
)
from companion_chat.boundary.db.models.chat_message_model import MessageRole, MessageStatus
from companion_chat.boundary.db.models.chat_session_model import SessionStatus
from companion_chat.main import create_app
from companion_chat.models.message import SafeChatMessage


@pytest.fixture
def api_prefix() -> str:
    return "/api/v1/chat-bot"


@pytest.fixture
def api_user_id() -> str:
    return "student-123"


@pytest.fixture
def mock_session_service():
    return AsyncMock()


@pytest.fixture
def mock_message_service():
    return AsyncMock()


@pytest.fixture
def app(mock_session_service, mock_message_service, api_user_id):
    app = create_app()
    app.dependency_overrides[get_current_user] = lambda: AuthenticatedUser(
        user_id=api_user_id, role="student"
    )
    app.dependency_overrides[get_session_service] = lambda: mock_session_service
    app.dependency_overrides[get_message_service] = lambda: mock_message_service
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def make_session_row():
    """Build an ORM-like session row."""

    def _make(status: SessionStatus = SessionStatus.ACTIVE, **overrides):
        now = datetime.now(timezone.utc)
        row = {"id": uuid4(), "status": status, "created_at": now, "updated_at": now, "version": 1}
        row.update(overrides)
        return SimpleNamespace(**row)

    return _make


@pytest.fixture
def make_safe_message(api_user_id):
    """Build a decrypted message as the services return it."""

    def _make(
        session_id=None,
        role: MessageRole = MessageRole.USER,
        sequence_number: int = 0,
        text: str = "Hello there",
    ) -> SafeChatMessage:
        now = datetime.now(timezone.utc)
        return SafeChatMessage(
            id=uuid4(),
            session_id=session_id or uuid4(),
            user_id=api_user_id,
            role=role,
            message=text,
            status=MessageStatus.PENDING if role == MessageRole.USER else MessageStatus.COMPLETED,
            sequence_number=sequence_number,
            created_at=now,
            updated_at=now,
        )

    return _make
