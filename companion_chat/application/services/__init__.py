"""Service orchestrators."""

from .message_service import MessageService
from .session_service import GetOrCreateSessionResult, SessionService

__all__ = [
    "GetOrCreateSessionResult",
    "MessageService",
    "SessionService",
]
