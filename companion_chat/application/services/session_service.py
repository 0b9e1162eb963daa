"""
Session service orchestrator.

Coordinates the chat session lifecycle: get-or-create under the
one-in-progress-session-per-user invariant, validated status transitions
with optimistic locking, and the stale waiting_for_bot sweep.

Dependencies: companion_chat.boundary.db.CRUD, companion_chat.core
System role: Session state machine use cases
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from companion_chat.boundary.db.base import utc_now
from companion_chat.boundary.db.CRUD.chat_session_crud import chat_session_crud
from companion_chat.boundary.db.models.chat_session_model import (
    ChatSessionModel,
    SessionStatus,
)
from companion_chat.core.exceptions import (
    InvalidTransitionError,
    SessionNotFoundError,
    VersionConflictError,
)
from companion_chat.core.session_state import (
    TransitionOutcome,
    TransitionResult,
    can_transition,
    retry_on_conflict,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GetOrCreateSessionResult:
    """Session returned by get-or-create and whether this call inserted it."""

    session: ChatSessionModel
    created: bool


class SessionService:
    """Session service orchestrator."""

    def __init__(
        self,
        db: AsyncSession,
        max_attempts: int = 3,
        backoff_seconds: float = 0.0,
    ) -> None:
        """
        Initialize session service with async database session.

        Args:
            db: Async SQLAlchemy session
            max_attempts: Bound on transition attempts under version conflicts
            backoff_seconds: Base sleep between conflicting attempts
        """
        self.db = db
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds

    async def get_or_create_active_session(self, user_id: str) -> GetOrCreateSessionResult:
        """
        Return the user's in-progress session, creating an active one if none exists.

        Concurrent callers for the same user race on the partial unique index;
        the loser rolls back and returns the winner's session.

        Args:
            user_id: Authenticated user id

        Returns:
            GetOrCreateSessionResult with created=True only for the inserting call

        Raises:
            IntegrityError: Insert failed and no in-progress session exists
        """
        existing = await chat_session_crud.get_in_progress_for_user(self.db, user_id)
        if existing is not None:
            return GetOrCreateSessionResult(session=existing, created=False)

        try:
            session = await chat_session_crud.create_for_user(self.db, user_id)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.info(
                f"{__name__}:get_or_create_active_session - Lost creation race, re-fetching"
            )
            existing = await chat_session_crud.get_in_progress_for_user(self.db, user_id)
            if existing is None:
                raise
            return GetOrCreateSessionResult(session=existing, created=False)

        logger.info(
            f"{__name__}:get_or_create_active_session - Created session_id={session.id}"
        )
        return GetOrCreateSessionResult(session=session, created=True)

    async def get_session(self, session_id: UUID, user_id: str) -> ChatSessionModel | None:
        """
        Get a session owned by the user.

        Args:
            session_id: Session UUID
            user_id: Authenticated user id

        Returns:
            ChatSessionModel, or None when absent or owned by someone else
        """
        return await chat_session_crud.get_for_user(self.db, session_id, user_id)

    async def get_active_session(self, user_id: str) -> ChatSessionModel | None:
        """Get the user's in-progress session, if any."""
        return await chat_session_crud.get_in_progress_for_user(self.db, user_id)

    async def transition(
        self,
        session_id: UUID,
        user_id: str,
        target: SessionStatus,
        *,
        allow_noop: bool = False,
    ) -> ChatSessionModel:
        """
        Move a session to a new status under optimistic locking.

        Every attempt reads the session, validates the edge and writes the new
        status only if the version is unchanged. A lost version race retries
        from a fresh read, up to max_attempts.

        Args:
            session_id: Session UUID
            user_id: Authenticated user id
            target: Requested status
            allow_noop: Return the session unchanged if it already has target

        Returns:
            Session after the transition

        Raises:
            SessionNotFoundError: Session absent or not owned
            InvalidTransitionError: Edge not in the transition table
            VersionConflictError: Every attempt lost a version race
        """
        target = SessionStatus(target)

        async def attempt() -> TransitionResult:
            session = await chat_session_crud.get_for_user(self.db, session_id, user_id)
            if session is None:
                return TransitionResult.failed(SessionNotFoundError(session_id))
            if allow_noop and session.status == target:
                return TransitionResult.ok(session)
            if not can_transition(session.status, target):
                return TransitionResult.failed(
                    InvalidTransitionError(session.status.value, target.value)
                )

            updated = await chat_session_crud.compare_and_set_status(
                self.db, session_id, user_id, session.version, target
            )
            if updated is None:
                return TransitionResult.conflict()
            return TransitionResult.ok(updated)

        result = await retry_on_conflict(attempt, self.max_attempts, self.backoff_seconds)

        if result.outcome is TransitionOutcome.ERROR:
            await self.db.rollback()
            raise result.error
        if result.outcome is TransitionOutcome.CONFLICT:
            await self.db.rollback()
            logger.warning(
                f"{__name__}:transition - Version conflict persisted "
                f"session_id={session_id} target={target.value} attempts={self.max_attempts}"
            )
            raise VersionConflictError(session_id, self.max_attempts)

        await self.db.commit()
        logger.info(
            f"{__name__}:transition - session_id={session_id} status={result.session.status.value} "
            f"version={result.session.version}"
        )
        return result.session

    async def mark_waiting_for_bot(self, session_id: UUID, user_id: str) -> ChatSessionModel:
        return await self.transition(session_id, user_id, SessionStatus.WAITING_FOR_BOT)

    async def mark_active(self, session_id: UUID, user_id: str) -> ChatSessionModel:
        return await self.transition(session_id, user_id, SessionStatus.ACTIVE)

    async def mark_escalated(self, session_id: UUID, user_id: str) -> ChatSessionModel:
        return await self.transition(session_id, user_id, SessionStatus.ESCALATED)

    async def mark_failed(self, session_id: UUID, user_id: str) -> ChatSessionModel:
        return await self.transition(session_id, user_id, SessionStatus.FAILED)

    async def close_session(self, session_id: UUID, user_id: str) -> ChatSessionModel:
        """Move a session to ended; a closed session never reopens."""
        return await self.transition(session_id, user_id, SessionStatus.ENDED)

    async def hard_delete_session(self, session_id: UUID, user_id: str) -> bool:
        """
        Delete a session and its messages.

        Administrative only; no state machine check.

        Args:
            session_id: Session UUID
            user_id: Owning user id

        Returns:
            True if deleted, False if not found
        """
        deleted = await chat_session_crud.delete_for_user(self.db, session_id, user_id)
        await self.db.commit()
        if deleted:
            logger.warning(f"{__name__}:hard_delete_session - Deleted session_id={session_id}")
        return deleted

    async def fail_stale_waiting_sessions(self, older_than: timedelta) -> int:
        """
        Move waiting_for_bot sessions with no update for too long to failed.

        Sessions whose reply is already stored are not stale. Each session is
        written through the version-conditional update, so a session that
        changed concurrently is skipped.

        Args:
            older_than: Age of the last update after which a wait is abandoned

        Returns:
            Number of sessions moved to failed
        """
        cutoff = utc_now() - older_than
        stale = await chat_session_crud.get_waiting_since(self.db, cutoff)

        failed = 0
        for session in stale:
            updated = await chat_session_crud.compare_and_set_status(
                self.db,
                session.id,
                session.user_id,
                session.version,
                SessionStatus.FAILED,
            )
            if updated is not None:
                failed += 1

        await self.db.commit()
        if stale:
            logger.info(
                f"{__name__}:fail_stale_waiting_sessions - found={len(stale)} failed={failed}"
            )
        return failed
