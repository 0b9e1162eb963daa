"""API-specific dependencies."""

# Re-export common dependencies
from .auth import AuthenticatedUser, TokenVerifier, get_current_user, get_token_verifier
from .dependencies import (
    get_content_cipher,
    get_event_publisher,
    get_message_service,
    get_session_service,
    get_settings_dependency,
)

__all__ = [
    "AuthenticatedUser",
    "TokenVerifier",
    "get_current_user",
    "get_token_verifier",
    "get_content_cipher",
    "get_event_publisher",
    "get_message_service",
    "get_session_service",
    "get_settings_dependency",
]
