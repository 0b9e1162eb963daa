"""
Database models package.

Exports:
  - ChatSessionModel, SessionStatus: Session ORM model and status enum
  - ChatMessageModel, MessageRole, MessageStatus: Message ORM model and enums

Dependencies: sqlalchemy, companion_chat.boundary.db.base
System role: Database model definitions for domain entities
"""

from companion_chat.boundary.db.models.chat_message_model import (
    ChatMessageModel,
    MessageRole,
    MessageStatus,
)
from companion_chat.boundary.db.models.chat_session_model import (
    IN_PROGRESS_STATUSES,
    TERMINAL_STATUSES,
    ChatSessionModel,
    SessionStatus,
)

__all__ = [
    "ChatSessionModel",
    "SessionStatus",
    "IN_PROGRESS_STATUSES",
    "TERMINAL_STATUSES",
    "ChatMessageModel",
    "MessageRole",
    "MessageStatus",
]
