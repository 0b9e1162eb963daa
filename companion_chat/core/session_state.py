"""
Session state machine tables and the bounded conflict-retry combinator.

The transition table and the blocking-status table live side by side so the
statuses that refuse new user messages always agree with the edges the
session can take.

Dependencies: tenacity, companion_chat.boundary.db.models, companion_chat.core.exceptions
System role: Pure domain rules for session status changes
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    retry_if_result,
    stop_after_attempt,
    wait_incrementing,
    wait_none,
)

from companion_chat.boundary.db.models.chat_session_model import (
    ChatSessionModel,
    SessionStatus,
)
from companion_chat.core.exceptions import SessionBlockedError

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.ACTIVE: frozenset(
        {SessionStatus.ENDED, SessionStatus.WAITING_FOR_BOT, SessionStatus.ESCALATED}
    ),
    SessionStatus.WAITING_FOR_BOT: frozenset(
        {
            SessionStatus.ACTIVE,
            SessionStatus.ENDED,
            SessionStatus.ESCALATED,
            SessionStatus.FAILED,
        }
    ),
    SessionStatus.FAILED: frozenset(
        {SessionStatus.ACTIVE, SessionStatus.ENDED, SessionStatus.ESCALATED}
    ),
    SessionStatus.ESCALATED: frozenset(),
    SessionStatus.ENDED: frozenset(),
}


def can_transition(current: SessionStatus, target: SessionStatus) -> bool:
    """Return True when the edge current -> target is in the transition table."""
    return target in ALLOWED_TRANSITIONS.get(SessionStatus(current), frozenset())


class SessionWaitingForBotError(SessionBlockedError):
    status = SessionStatus.WAITING_FOR_BOT.value
    code = "SESSION_WAITING_FOR_BOT"
    default_message = "The bot is still replying to your last message. Please wait."


class SessionEndedError(SessionBlockedError):
    status = SessionStatus.ENDED.value
    code = "SESSION_ENDED"
    default_message = "This chat session has been closed. Please start a new session."


class SessionEscalatedError(SessionBlockedError):
    status = SessionStatus.ESCALATED.value
    code = "SESSION_ESCALATED"
    default_message = "This chat session has been escalated and needs human follow-up."


class SessionFailedError(SessionBlockedError):
    status = SessionStatus.FAILED.value
    code = "SESSION_FAILED"
    default_message = "The bot failed to reply. Please retry your last message."


# Statuses that refuse a new user message, with the error raised for each.
BLOCKING_STATUSES: dict[SessionStatus, type[SessionBlockedError]] = {
    SessionStatus.WAITING_FOR_BOT: SessionWaitingForBotError,
    SessionStatus.ENDED: SessionEndedError,
    SessionStatus.ESCALATED: SessionEscalatedError,
    SessionStatus.FAILED: SessionFailedError,
}


def blocked_error_for(status: SessionStatus) -> type[SessionBlockedError] | None:
    """Return the blocking error class for a status, None when messages are accepted."""
    return BLOCKING_STATUSES.get(SessionStatus(status))


class TransitionOutcome(str, Enum):
    """Tag carried by every transition attempt."""

    OK = "ok"
    CONFLICT = "conflict"
    ERROR = "error"


@dataclass(frozen=True)
class TransitionResult:
    """
    Result of one transition attempt.

    Attributes:
        outcome: OK with the updated session, CONFLICT when the version moved,
            ERROR with a domain exception that must not be retried
        session: Session after the write (OK only)
        error: Exception to raise (ERROR only)
    """

    outcome: TransitionOutcome
    session: ChatSessionModel | None = None
    error: Exception | None = None

    @classmethod
    def ok(cls, session: ChatSessionModel) -> "TransitionResult":
        return cls(TransitionOutcome.OK, session=session)

    @classmethod
    def conflict(cls) -> "TransitionResult":
        return cls(TransitionOutcome.CONFLICT)

    @classmethod
    def failed(cls, error: Exception) -> "TransitionResult":
        return cls(TransitionOutcome.ERROR, error=error)


async def retry_on_conflict(
    attempt: Callable[[], Awaitable[TransitionResult]],
    max_attempts: int,
    backoff_seconds: float = 0.0,
) -> TransitionResult:
    """
    Run an attempt until it stops reporting CONFLICT or attempts run out.

    Each call of ``attempt`` must re-read and re-validate from scratch. OK and
    ERROR results are returned as soon as they happen; the last CONFLICT is
    returned when every attempt lost. Exceptions raised by ``attempt`` are
    not retried.

    Args:
        attempt: Zero-argument coroutine factory producing a TransitionResult
        max_attempts: Upper bound on attempts (at least one is made)
        backoff_seconds: Sleep between attempts, scaled linearly by attempt number

    Returns:
        The first non-CONFLICT result, or the final CONFLICT result
    """
    attempts = max(1, max_attempts)
    if backoff_seconds > 0:
        wait = wait_incrementing(start=backoff_seconds, increment=backoff_seconds)
    else:
        wait = wait_none()

    retrying = AsyncRetrying(
        retry=retry_if_result(lambda result: result.outcome is TransitionOutcome.CONFLICT),
        stop=stop_after_attempt(attempts),
        wait=wait,
        sleep=asyncio.sleep,
        before_sleep=lambda retry_state: logger.debug(
            f"{__name__}:retry_on_conflict - Version race lost, "
            f"retry {retry_state.attempt_number}/{attempts}"
        ),
        retry_error_callback=lambda retry_state: retry_state.outcome.result(),
    )
    return await retrying(attempt)
