"""
Exception hierarchy for the companion chat application.

Provides layered exception structure for domain-specific errors.
All exceptions include context for observability and a stable client-facing
code. Operational errors are expected conditions returned to the client as
structured failures; non-operational errors are logged in full and hidden
behind a generic 500.

Dependencies: None (pure domain layer)
System role: Centralized exception handling across the application
"""

from typing import Any


class ChatBotException(Exception):
    """Base exception for all companion chat errors."""

    status_code: int = 500
    code: str = "INTERNAL_SERVER_ERROR"
    is_operational: bool = True

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class SessionNotFoundError(ChatBotException):
    """
    Raised when a session is absent or not owned by the caller.

    Both cases share one error so callers cannot probe for other users'
    session ids.
    """

    status_code = 404
    code = "CHAT_SESSION_NOT_FOUND"

    def __init__(self, session_id: Any, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["session_id"] = str(session_id)
        super().__init__("Chat session not found", details)


class MessageNotFoundError(ChatBotException):
    """Raised when a message is absent or not owned by the caller."""

    status_code = 404
    code = "CHAT_MESSAGE_NOT_FOUND"

    def __init__(self, message_id: Any, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["message_id"] = str(message_id)
        super().__init__("Chat message not found", details)


class InvalidTransitionError(ChatBotException):
    """Raised when a session status edge is not permitted."""

    status_code = 400
    code = "INVALID_STATUS_TRANSITION"

    def __init__(
        self,
        current: str,
        target: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize invalid transition error.

        Args:
            current: Status the session is in
            target: Status that was requested
            details: Additional context
        """
        details = details or {}
        details.update({"from_status": current, "to_status": target})
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot transition status from '{current}' to '{target}'.", details
        )


class SessionBlockedError(ChatBotException):
    """
    Raised when a session's status does not accept a new user message.

    Concrete subclasses are built from the blocking-status table in
    ``companion_chat.core.session_state`` so each status keeps its own code.
    """

    status_code = 409
    code = "SESSION_BLOCKED"
    status: str = ""
    default_message: str = "Chat session is not accepting messages."

    def __init__(self, session_id: Any, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details.update({"session_id": str(session_id), "status": self.status})
        super().__init__(self.default_message, details)


class SequenceConflictError(ChatBotException):
    """
    Raised when another message took the next sequence number first.

    Surfaced to the user and never retried: a retry with a fresh number would
    let two user turns through before the bot answers.
    """

    status_code = 409
    code = "MESSAGE_SEQUENCE_CONFLICT"

    def __init__(
        self,
        session_id: Any,
        sequence_number: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details["session_id"] = str(session_id)
        if sequence_number is not None:
            details["sequence_number"] = sequence_number
        super().__init__(
            "Another message is already being processed. Please wait for the reply.",
            details,
        )


class SessionNotFailedError(ChatBotException):
    """Raised when a retry is attempted on a session that is not failed."""

    status_code = 409
    code = "SESSION_NOT_FAILED"

    def __init__(
        self,
        session_id: Any,
        status: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details.update({"session_id": str(session_id), "status": status})
        super().__init__("Only failed sessions can be retried.", details)


class VersionConflictError(ChatBotException):
    """Raised when a status write kept losing to concurrent writers."""

    status_code = 409
    code = "SESSION_VERSION_CONFLICT"

    def __init__(
        self,
        session_id: Any,
        attempts: int,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details.update({"session_id": str(session_id), "attempts": attempts})
        super().__init__(
            "The chat session was updated concurrently. Please try again.", details
        )


class DecryptionError(ChatBotException):
    """Raised when stored content cannot be decrypted (data integrity failure)."""

    status_code = 500
    code = "DECRYPTION_ERROR"
    is_operational = False

    def __init__(self, message: str = "Failed to decrypt chat message", details: dict[str, Any] | None = None) -> None:
        super().__init__(message, details)


class MessageValidationError(ChatBotException):
    """Raised when message text fails content rules."""

    status_code = 400
    code = "BAD_REQUEST"

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Field name that failed validation
            details: Additional context
        """
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)


class AuthenticationError(ChatBotException):
    """Raised when the bearer token is missing or cannot be verified."""

    status_code = 401

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        self.code = code
        super().__init__(message, details)


class AuthorizationError(AuthenticationError):
    """Raised when a verified caller lacks the required role or claims."""

    status_code = 403
