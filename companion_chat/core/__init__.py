"""
Core business logic module.

Contains the exception hierarchy, session state machine tables and message
content rules. Everything here is free of I/O.
"""

from companion_chat.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ChatBotException,
    DecryptionError,
    InvalidTransitionError,
    MessageNotFoundError,
    MessageValidationError,
    SequenceConflictError,
    SessionBlockedError,
    SessionNotFailedError,
    SessionNotFoundError,
    VersionConflictError,
)
from companion_chat.core.message_rules import (
    is_numbers_only,
    looks_like_nonsense,
    validate_message_text,
)
from companion_chat.core.session_state import (
    ALLOWED_TRANSITIONS,
    BLOCKING_STATUSES,
    SessionEndedError,
    SessionEscalatedError,
    SessionFailedError,
    SessionWaitingForBotError,
    TransitionOutcome,
    TransitionResult,
    blocked_error_for,
    can_transition,
    retry_on_conflict,
)

__all__ = [
    # Exceptions
    "ChatBotException",
    "SessionNotFoundError",
    "MessageNotFoundError",
    "InvalidTransitionError",
    "SessionBlockedError",
    "SessionWaitingForBotError",
    "SessionEndedError",
    "SessionEscalatedError",
    "SessionFailedError",
    "SequenceConflictError",
    "SessionNotFailedError",
    "VersionConflictError",
    "DecryptionError",
    "MessageValidationError",
    "AuthenticationError",
    "AuthorizationError",
    # State machine
    "ALLOWED_TRANSITIONS",
    "BLOCKING_STATUSES",
    "TransitionOutcome",
    "TransitionResult",
    "blocked_error_for",
    "can_transition",
    "retry_on_conflict",
    # Message rules
    "is_numbers_only",
    "looks_like_nonsense",
    "validate_message_text",
]
