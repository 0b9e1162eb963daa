"""
Unified application settings.

Aggregates all configuration modules into a single Settings class.
Provides dependency injection factory for FastAPI.

Dependencies: All config modules
System role: Central configuration aggregator for the application
"""

from functools import lru_cache

from companion_chat.configs.auth import AuthSettings
from companion_chat.configs.base import BaseSettings
from companion_chat.configs.chat import ChatSettings
from companion_chat.configs.database import DatabaseSettings
from companion_chat.configs.encryption import EncryptionSettings
from companion_chat.configs.events import EventSettings


class Settings(BaseSettings):
    """Unified application settings aggregating all config modules."""

    database: DatabaseSettings = DatabaseSettings()
    encryption: EncryptionSettings = EncryptionSettings()
    events: EventSettings = EventSettings()
    auth: AuthSettings = AuthSettings()
    chat: ChatSettings = ChatSettings()


@lru_cache
def get_settings() -> Settings:
    """
    Get application settings singleton.

    Returns Settings instance, cached for dependency injection.
    Environment variables loaded once at startup.

    Returns:
        Settings: Application settings instance

    Usage:
        from companion_chat.configs import get_settings
        settings = get_settings()
        page_size = settings.chat.default_page_size
    """
    return Settings()
