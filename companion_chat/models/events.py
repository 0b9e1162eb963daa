"""
Event schemas exchanged with the bot worker.

Dependencies: pydantic
System role: Queue message contract
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ChatMessageEvent(BaseModel):
    """CHAT_MESSAGE_CREATED event body (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True)

    event_type: str = Field(default="CHAT_MESSAGE_CREATED", alias="eventType")
    user_id: str = Field(alias="userId")
    session_id: uuid.UUID = Field(alias="sessionId")
    message_id: uuid.UUID = Field(alias="messageId")
    timestamp: datetime

    def to_payload(self) -> dict:
        """Serialise with wire aliases."""
        return self.model_dump(mode="json", by_alias=True)
