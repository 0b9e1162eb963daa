"""
Session domain models and schemas.

Response schemas for chat session operations.

Dependencies: pydantic
System role: Session API contracts
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from companion_chat.boundary.db.models.chat_session_model import SessionStatus


class SessionResponse(BaseModel):
    """Response schema for get-or-create."""

    model_config = ConfigDict(from_attributes=True)

    session_id: uuid.UUID = Field(validation_alias="id")
    status: SessionStatus
    created_at: datetime


class SessionClosedResponse(BaseModel):
    """Response schema for closing a session."""

    model_config = ConfigDict(from_attributes=True)

    session_id: uuid.UUID = Field(validation_alias="id")
    status: SessionStatus
    updated_at: datetime
