"""
Message content encryption settings.

Dependencies: pydantic_settings
System role: Key material for encryption-at-rest of chat messages
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from companion_chat.configs.base import BaseSettings


class EncryptionSettings(BaseSettings):
    """AES-256-GCM settings for message content."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="MESSAGE_CONTENT_ENCRYPTION_",
        case_sensitive=False,
        extra="ignore",
    )

    key: str = Field(
        default="default_content_encryption_key_1234",
        min_length=32,
        description="64 hex chars used as-is, otherwise a passphrase hashed with SHA-256",
    )
    iv_length: int = Field(default=16, ge=12, description="GCM nonce length in bytes")
