"""
Database boundary layer: ORM models, CRUD operations, and connection management.

Exports:
  - Base, TimestampMixin, UUIDMixin: Model building blocks
  - get_async_engine(), get_async_session_factory(), get_async_db(): Connection management
  - ChatSessionModel, ChatMessageModel: Domain entities
  - SessionStatus, MessageRole, MessageStatus: Enum types
  - chat_session_crud, chat_message_crud: CRUD operation singletons

Dependencies: sqlalchemy, companion_chat.configs
System role: Database adapter for chat sessions and messages
"""

from companion_chat.boundary.db.base import Base, TimestampMixin, UUIDMixin
from companion_chat.boundary.db.connection import (
    get_async_db,
    get_async_engine,
    get_async_session_factory,
)
from companion_chat.boundary.db.models import (
    IN_PROGRESS_STATUSES,
    TERMINAL_STATUSES,
    ChatMessageModel,
    ChatSessionModel,
    MessageRole,
    MessageStatus,
    SessionStatus,
)
from companion_chat.boundary.db.CRUD import (
    BaseCRUD,
    ChatMessageCRUD,
    ChatSessionCRUD,
    chat_message_crud,
    chat_session_crud,
)

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    # Connection
    "get_async_db",
    "get_async_engine",
    "get_async_session_factory",
    # Models
    "ChatSessionModel",
    "ChatMessageModel",
    "SessionStatus",
    "MessageRole",
    "MessageStatus",
    "IN_PROGRESS_STATUSES",
    "TERMINAL_STATUSES",
    # CRUD classes
    "BaseCRUD",
    "ChatSessionCRUD",
    "ChatMessageCRUD",
    # CRUD singletons
    "chat_session_crud",
    "chat_message_crud",
]
