"""
Bot worker event queue settings.

Dependencies: pydantic_settings
System role: SQS queue configuration for chat message events
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from companion_chat.configs.base import BaseSettings


class EventSettings(BaseSettings):
    """SQS queue used to wake the bot worker."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SQS_",
        case_sensitive=False,
        extra="ignore",
    )

    queue_url: str | None = Field(
        default=None,
        description="Queue URL for chat message events (publishing skipped when unset)",
    )
    region: str = Field(default="ap-southeast-2", description="AWS region of the queue")
    event_type: str = Field(
        default="CHAT_MESSAGE_CREATED",
        description="eventType stamped on user message events",
    )
