"""
Chat message CRUD operations.

Message-specific queries: latest sequence lookup, latest message by role,
cursor pagination over (created_at, id), and soft delete.

Dependencies: sqlalchemy, companion_chat.boundary.db.models
System role: Message persistence operations
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import and_, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from companion_chat.boundary.db.CRUD.base_crud import BaseCRUD
from companion_chat.boundary.db.models.chat_message_model import (
    SEQUENCE_CONSTRAINT,
    ChatMessageModel,
    MessageRole,
    MessageStatus,
)


def is_sequence_collision(error: IntegrityError) -> bool:
    """
    Return True when an insert lost the (session_id, sequence_number) race.

    PostgreSQL names the constraint; SQLite lists the constrained columns.
    """
    text = str(error.orig)
    return SEQUENCE_CONSTRAINT in text or "chat_messages.sequence_number" in text


class ChatMessageCRUD(BaseCRUD[ChatMessageModel]):
    """CRUD operations for ChatMessageModel."""

    def __init__(self) -> None:
        """Initialize ChatMessageCRUD with ChatMessageModel."""
        super().__init__(ChatMessageModel)

    async def create_message(
        self,
        session: AsyncSession,
        session_id: UUID,
        user_id: str,
        role: MessageRole,
        content_encrypted: dict,
        sequence_number: int,
        status: MessageStatus = MessageStatus.PENDING,
    ) -> ChatMessageModel:
        """
        Insert a message at a given sequence number.

        Args:
            session: Async database session
            session_id: Owning session
            user_id: Owning user
            role: Author role
            content_encrypted: Encrypted content envelope
            sequence_number: Sequence number computed by the caller
            status: Delivery status

        Returns:
            Created ChatMessageModel

        Raises:
            IntegrityError: (session_id, sequence_number) already taken
        """
        return await self.create(
            session,
            session_id=session_id,
            user_id=user_id,
            role=role,
            content_encrypted=content_encrypted,
            sequence_number=sequence_number,
            status=status,
        )

    async def get_latest_sequence_number(
        self,
        session: AsyncSession,
        session_id: UUID,
    ) -> int | None:
        """
        Highest sequence number in the session, soft-deleted rows included.

        Args:
            session: Async database session
            session_id: Session UUID

        Returns:
            Latest sequence number, None when the session has no messages
        """
        stmt = (
            select(ChatMessageModel.sequence_number)
            .where(ChatMessageModel.session_id == session_id)
            .order_by(ChatMessageModel.sequence_number.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_latest_by_role(
        self,
        session: AsyncSession,
        session_id: UUID,
        role: MessageRole,
    ) -> ChatMessageModel | None:
        """
        Most recent non-deleted message authored by a role.

        Args:
            session: Async database session
            session_id: Session UUID
            role: Author role

        Returns:
            Latest ChatMessageModel for the role, or None
        """
        stmt = (
            select(ChatMessageModel)
            .where(
                ChatMessageModel.session_id == session_id,
                ChatMessageModel.role == role,
                ChatMessageModel.is_deleted.is_(False),
            )
            .order_by(ChatMessageModel.sequence_number.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_in_session(
        self,
        session: AsyncSession,
        id: UUID,
        session_id: UUID,
    ) -> ChatMessageModel | None:
        """
        Retrieve a non-deleted message only if it belongs to the session.

        Args:
            session: Async database session
            id: Message UUID
            session_id: Session UUID

        Returns:
            ChatMessageModel or None
        """
        stmt = select(ChatMessageModel).where(
            ChatMessageModel.id == id,
            ChatMessageModel.session_id == session_id,
            ChatMessageModel.is_deleted.is_(False),
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_page(
        self,
        session: AsyncSession,
        session_id: UUID,
        limit: int,
        cursor: UUID | None = None,
    ) -> Sequence[ChatMessageModel]:
        """
        Retrieve non-deleted messages newest-first, strictly older than the cursor.

        The cursor is the id of the last message of the previous page. Rows
        sharing the cursor's created_at are tie-broken by id. An unknown
        cursor is ignored and the first page is returned.

        Args:
            session: Async database session
            session_id: Session UUID
            limit: Number of rows to fetch (callers pass page size + 1)
            cursor: Id of the last message already returned

        Returns:
            Sequence of ChatMessageModels ordered by (created_at, id) descending
        """
        conditions = [
            ChatMessageModel.session_id == session_id,
            ChatMessageModel.is_deleted.is_(False),
        ]

        if cursor is not None:
            anchor = await self.get_in_session(session, cursor, session_id)
            if anchor is not None:
                conditions.append(
                    or_(
                        ChatMessageModel.created_at < anchor.created_at,
                        and_(
                            ChatMessageModel.created_at == anchor.created_at,
                            ChatMessageModel.id < anchor.id,
                        ),
                    )
                )

        stmt = (
            select(ChatMessageModel)
            .where(*conditions)
            .order_by(ChatMessageModel.created_at.desc(), ChatMessageModel.id.desc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_all_for_session(
        self,
        session: AsyncSession,
        session_id: UUID,
    ) -> Sequence[ChatMessageModel]:
        """All messages of a session in sequence order, soft-deleted included."""
        stmt = (
            select(ChatMessageModel)
            .where(ChatMessageModel.session_id == session_id)
            .order_by(ChatMessageModel.sequence_number.asc())
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def soft_delete(
        self,
        session: AsyncSession,
        id: UUID,
        user_id: str,
    ) -> bool:
        """
        Flag a message owned by the user as deleted.

        Args:
            session: Async database session
            id: Message UUID
            user_id: Owning user

        Returns:
            True if a message was flagged
        """
        stmt = (
            update(ChatMessageModel)
            .where(
                ChatMessageModel.id == id,
                ChatMessageModel.user_id == user_id,
                ChatMessageModel.is_deleted.is_(False),
            )
            .values(is_deleted=True)
        )
        result = await session.execute(stmt)
        return result.rowcount > 0


chat_message_crud = ChatMessageCRUD()
