"""
Message domain models and schemas.

Request/response schemas for chat messages, history pages and the
bot-reply polling result.

Dependencies: pydantic
System role: Message API contracts
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from companion_chat.boundary.db.models.chat_message_model import (
    MessageRole,
    MessageStatus,
)
from companion_chat.boundary.db.models.chat_session_model import SessionStatus


class CreateMessageRequest(BaseModel):
    """Request schema for sending (or retrying) a user message."""

    session_id: uuid.UUID
    message: str = Field(description="Message text, validated by content rules")


class SafeChatMessage(BaseModel):
    """A chat message with its content decrypted."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    session_id: uuid.UUID
    user_id: str
    role: MessageRole
    message: str
    status: MessageStatus
    sequence_number: int
    is_deleted: bool = False
    created_at: datetime
    updated_at: datetime


class PaginatedSessionMessages(BaseModel):
    """One page of session history, newest first."""

    messages: list[SafeChatMessage]
    has_more: bool = False
    next_cursor: uuid.UUID | None = Field(
        default=None, description="Id of the last message, pass as last_message_id"
    )
    session_status: SessionStatus


class BotReplyResult(BaseModel):
    """Polling outcome: a bot reply when one is ready, and the session status."""

    message: SafeChatMessage | None = None
    session_status: SessionStatus | None = None

    @property
    def has_reply(self) -> bool:
        return self.message is not None
