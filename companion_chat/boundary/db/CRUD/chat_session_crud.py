"""
Chat session CRUD operations.

Session-specific queries: user-scoped lookups, the in-progress lookup
backing the one-session-per-user invariant, and the version-conditional
status write used for optimistic locking.

Dependencies: sqlalchemy, companion_chat.boundary.db.models
System role: Session persistence operations
"""

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import delete, exists, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from companion_chat.boundary.db.CRUD.base_crud import BaseCRUD
from companion_chat.boundary.db.models.chat_message_model import ChatMessageModel, MessageRole
from companion_chat.boundary.db.models.chat_session_model import (
    IN_PROGRESS_STATUSES,
    ChatSessionModel,
    SessionStatus,
)


class ChatSessionCRUD(BaseCRUD[ChatSessionModel]):
    """CRUD operations for ChatSessionModel."""

    def __init__(self) -> None:
        """Initialize ChatSessionCRUD with ChatSessionModel."""
        super().__init__(ChatSessionModel)

    async def create_for_user(
        self,
        session: AsyncSession,
        user_id: str,
    ) -> ChatSessionModel:
        """
        Insert a new active session for a user.

        Args:
            session: Async database session
            user_id: Owning user

        Returns:
            Created ChatSessionModel

        Raises:
            IntegrityError: User already has an in-progress session
        """
        return await self.create(
            session,
            user_id=user_id,
            status=SessionStatus.ACTIVE,
            version=1,
        )

    async def get_for_user(
        self,
        session: AsyncSession,
        id: UUID,
        user_id: str,
    ) -> ChatSessionModel | None:
        """
        Retrieve a session only if the user owns it.

        populate_existing makes a re-read after a lost version race
        return the fresh row instead of the identity-map copy.

        Args:
            session: Async database session
            id: Session UUID
            user_id: Requesting user

        Returns:
            ChatSessionModel if found and owned, None otherwise
        """
        stmt = (
            select(ChatSessionModel)
            .where(ChatSessionModel.id == id, ChatSessionModel.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_in_progress_for_user(
        self,
        session: AsyncSession,
        user_id: str,
    ) -> ChatSessionModel | None:
        """
        Retrieve the user's most recent in-progress session.

        Args:
            session: Async database session
            user_id: Owning user

        Returns:
            Session in active/waiting_for_bot/failed, or None
        """
        stmt = (
            select(ChatSessionModel)
            .where(
                ChatSessionModel.user_id == user_id,
                ChatSessionModel.status.in_(IN_PROGRESS_STATUSES),
            )
            .order_by(ChatSessionModel.created_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def compare_and_set_status(
        self,
        session: AsyncSession,
        id: UUID,
        user_id: str,
        expected_version: int,
        status: SessionStatus,
    ) -> ChatSessionModel | None:
        """
        Write a new status only if the row still has the expected version.

        Args:
            session: Async database session
            id: Session UUID
            user_id: Owning user
            expected_version: Version observed by the caller's last read
            status: New status

        Returns:
            Updated ChatSessionModel, or None when another writer got there first
        """
        stmt = (
            update(ChatSessionModel)
            .where(
                ChatSessionModel.id == id,
                ChatSessionModel.user_id == user_id,
                ChatSessionModel.version == expected_version,
            )
            .values(status=status, version=expected_version + 1)
            .returning(ChatSessionModel)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_waiting_since(
        self,
        session: AsyncSession,
        cutoff: datetime,
        limit: int | None = None,
    ) -> Sequence[ChatSessionModel]:
        """
        Retrieve waiting_for_bot sessions not updated since the cutoff.

        A session whose latest user message already has a bot reply is not
        stale; it only waits for the client's next poll.

        Args:
            session: Async database session
            cutoff: Sessions with updated_at before this are returned
            limit: Maximum number of sessions

        Returns:
            Sequence of stale waiting sessions, oldest first
        """
        user_message = aliased(ChatMessageModel)
        bot_message = aliased(ChatMessageModel)

        latest_user_sequence = (
            select(func.max(user_message.sequence_number))
            .where(
                user_message.session_id == ChatSessionModel.id,
                user_message.role == MessageRole.USER,
                user_message.is_deleted.is_(False),
            )
            .correlate(ChatSessionModel)
            .scalar_subquery()
        )
        answered = exists().where(
            bot_message.session_id == ChatSessionModel.id,
            bot_message.role == MessageRole.BOT,
            bot_message.is_deleted.is_(False),
            bot_message.sequence_number > latest_user_sequence,
        ).correlate(ChatSessionModel)

        stmt = (
            select(ChatSessionModel)
            .where(
                ChatSessionModel.status == SessionStatus.WAITING_FOR_BOT,
                ChatSessionModel.updated_at < cutoff,
                ~answered,
            )
            .order_by(ChatSessionModel.updated_at.asc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        return result.scalars().all()

    async def delete_for_user(
        self,
        session: AsyncSession,
        id: UUID,
        user_id: str,
    ) -> bool:
        """
        Hard-delete a session owned by the user.

        Args:
            session: Async database session
            id: Session UUID
            user_id: Owning user

        Returns:
            True if a row was deleted
        """
        stmt = delete(ChatSessionModel).where(
            ChatSessionModel.id == id,
            ChatSessionModel.user_id == user_id,
        )
        result = await session.execute(stmt)
        return result.rowcount > 0


chat_session_crud = ChatSessionCRUD()
