"""
Chat behaviour settings.

Retry bounds for status transitions, pagination limits, message size
and the waiting_for_bot timeout used by the stale session sweep.

Dependencies: pydantic_settings
System role: Tunables for the session/message core
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from companion_chat.configs.base import BaseSettings


class ChatSettings(BaseSettings):
    """Session and message tunables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CHAT_",
        case_sensitive=False,
        extra="ignore",
    )

    transition_max_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts for a status transition before a version conflict is surfaced",
    )
    transition_backoff_seconds: float = Field(
        default=0.0,
        ge=0.0,
        description="Base delay between transition attempts (linear)",
    )
    default_page_size: int = Field(default=10, ge=1)
    max_page_size: int = Field(default=50, ge=1)
    max_message_length: int = Field(default=2000, ge=2)
    stale_waiting_after_seconds: int = Field(
        default=300,
        ge=1,
        description="Age after which a waiting_for_bot session is swept to failed",
    )
    bot_responder: str | None = Field(
        default=None,
        description="Import path 'module:function' of the async bot responder used by the worker",
    )
