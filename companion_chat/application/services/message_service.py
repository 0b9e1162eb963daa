"""
Message service orchestrator.

Sequences user and bot messages within a session, encrypts content at rest,
publishes CHAT_MESSAGE_CREATED events for the bot worker, pages through
history and answers bot-reply polls.

Dependencies: companion_chat.boundary (db, crypto, aws), companion_chat.core
System role: Message sequencing and polling use cases
"""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from companion_chat.application.services.session_service import SessionService
from companion_chat.boundary.aws.sqs_publisher import EventPublisher
from companion_chat.boundary.crypto.content_cipher import ContentCipher
from companion_chat.boundary.db.CRUD.chat_message_crud import (
    chat_message_crud,
    is_sequence_collision,
)
from companion_chat.boundary.db.CRUD.chat_session_crud import chat_session_crud
from companion_chat.boundary.db.models.chat_message_model import (
    ChatMessageModel,
    MessageRole,
    MessageStatus,
)
from companion_chat.boundary.db.models.chat_session_model import (
    ChatSessionModel,
    SessionStatus,
)
from companion_chat.core.exceptions import (
    InvalidTransitionError,
    MessageNotFoundError,
    SequenceConflictError,
    SessionNotFailedError,
    SessionNotFoundError,
)
from companion_chat.core.session_state import blocked_error_for
from companion_chat.models.events import ChatMessageEvent
from companion_chat.models.message import (
    BotReplyResult,
    PaginatedSessionMessages,
    SafeChatMessage,
)
from companion_chat.observability.log_utils import log_exception_with_context

logger = logging.getLogger(__name__)

_POLLABLE_STATUSES = frozenset({SessionStatus.WAITING_FOR_BOT, SessionStatus.ACTIVE})


class MessageService:
    """Message service orchestrator."""

    def __init__(
        self,
        db: AsyncSession,
        cipher: ContentCipher,
        publisher: EventPublisher | None = None,
        session_service: SessionService | None = None,
        event_type: str = "CHAT_MESSAGE_CREATED",
    ) -> None:
        """
        Initialize message service.

        Args:
            db: Async SQLAlchemy session
            cipher: Encryption codec for message content
            publisher: Event publisher for the bot worker (None disables publishing)
            session_service: Session state machine sharing the same db session
            event_type: Event type stamped on published events
        """
        self.db = db
        self.cipher = cipher
        self.publisher = publisher
        self.session_service = session_service or SessionService(db)
        self.event_type = event_type

    async def _load_session(self, session_id: UUID, user_id: str) -> ChatSessionModel:
        session = await chat_session_crud.get_for_user(self.db, session_id, user_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    async def _next_sequence_number(self, session_id: UUID) -> int:
        latest = await chat_message_crud.get_latest_sequence_number(self.db, session_id)
        return 0 if latest is None else latest + 1

    def to_safe_message(self, message: ChatMessageModel) -> SafeChatMessage:
        """
        Decrypt a stored message into its client-facing form.

        Raises:
            DecryptionError: Stored content cannot be decrypted
        """
        return SafeChatMessage(
            id=message.id,
            session_id=message.session_id,
            user_id=message.user_id,
            role=message.role,
            message=self.cipher.decrypt(message.content_encrypted),
            status=message.status,
            sequence_number=message.sequence_number,
            is_deleted=message.is_deleted,
            created_at=message.created_at,
            updated_at=message.updated_at,
        )

    async def append_user_message(
        self,
        user_id: str,
        session_id: UUID,
        text: str,
    ) -> SafeChatMessage:
        """
        Append a user message and hand the session to the bot.

        The insert and the active -> waiting_for_bot write share one unit of
        work. Losing either race (sequence number taken, or session version
        moved) means another message got in first; nothing is retried.

        Args:
            user_id: Authenticated user id
            session_id: Target session
            text: Validated message text

        Returns:
            The stored message, decrypted

        Raises:
            SessionNotFoundError: Session absent or not owned
            SessionBlockedError: Session status refuses new messages
            SequenceConflictError: A concurrent message won
        """
        session = await self._load_session(session_id, user_id)

        blocked = blocked_error_for(session.status)
        if blocked is not None:
            raise blocked(session_id)

        expected_version = session.version
        sequence_number = await self._next_sequence_number(session_id)
        encrypted = self.cipher.encrypt(text)

        try:
            message = await chat_message_crud.create_message(
                self.db,
                session_id=session_id,
                user_id=user_id,
                role=MessageRole.USER,
                content_encrypted=encrypted.model_dump(),
                sequence_number=sequence_number,
                status=MessageStatus.PENDING,
            )
        except IntegrityError as e:
            await self.db.rollback()
            if not is_sequence_collision(e):
                raise
            logger.warning(
                f"{__name__}:append_user_message - Sequence taken "
                f"session_id={session_id} sequence_number={sequence_number}"
            )
            raise SequenceConflictError(session_id, sequence_number) from e

        updated = await chat_session_crud.compare_and_set_status(
            self.db,
            session_id,
            user_id,
            expected_version,
            SessionStatus.WAITING_FOR_BOT,
        )
        if updated is None:
            await self.db.rollback()
            logger.warning(
                f"{__name__}:append_user_message - Session version moved "
                f"session_id={session_id} expected_version={expected_version}"
            )
            raise SequenceConflictError(session_id, sequence_number)

        await self.db.commit()
        logger.info(
            f"{__name__}:append_user_message - Stored message_id={message.id} "
            f"sequence_number={sequence_number} (len={len(text)})"
        )

        await self._publish_created(message)
        return self.to_safe_message(message)

    async def _publish_created(self, message: ChatMessageModel) -> None:
        """Publish CHAT_MESSAGE_CREATED; failures are logged, never raised."""
        if self.publisher is None:
            return

        event = ChatMessageEvent(
            event_type=self.event_type,
            user_id=message.user_id,
            session_id=message.session_id,
            message_id=message.id,
            timestamp=message.created_at,
        )
        try:
            await self.publisher.publish(event.to_payload())
        except Exception as e:
            log_exception_with_context(
                logger,
                "Failed to publish chat message event",
                e,
                message_id=message.id,
                session_id=message.session_id,
            )

    async def is_answered(self, session_id: UUID, message_id: UUID) -> bool:
        """Return True when a bot message already follows the given message."""
        reference = await chat_message_crud.get_in_session(self.db, message_id, session_id)
        if reference is None:
            return False
        bot_message = await chat_message_crud.get_latest_by_role(
            self.db, session_id, MessageRole.BOT
        )
        return (
            bot_message is not None
            and bot_message.sequence_number > reference.sequence_number
        )

    async def append_bot_message(
        self,
        user_id: str,
        session_id: UUID,
        text: str,
        reply_to: UUID | None = None,
    ) -> SafeChatMessage | None:
        """
        Append the bot's reply at the next sequence number.

        Session status is left alone; the next poll flips it back to active.
        With ``reply_to`` set, a user message that already has its reply is
        left alone, so a redelivered event stores nothing.

        Args:
            user_id: Owner of the session
            session_id: Target session
            text: Bot reply text
            reply_to: User message being answered

        Returns:
            The stored bot message, decrypted, or None when already answered

        Raises:
            SessionNotFoundError: Session absent or not owned
            SequenceConflictError: Sequence number taken concurrently
        """
        await self._load_session(session_id, user_id)
        if reply_to is not None and await self.is_answered(session_id, reply_to):
            logger.info(
                f"{__name__}:append_bot_message - Already answered "
                f"session_id={session_id} reply_to={reply_to}"
            )
            return None

        sequence_number = await self._next_sequence_number(session_id)
        encrypted = self.cipher.encrypt(text)

        try:
            message = await chat_message_crud.create_message(
                self.db,
                session_id=session_id,
                user_id=user_id,
                role=MessageRole.BOT,
                content_encrypted=encrypted.model_dump(),
                sequence_number=sequence_number,
                status=MessageStatus.COMPLETED,
            )
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if not is_sequence_collision(e):
                raise
            raise SequenceConflictError(session_id, sequence_number) from e

        logger.info(
            f"{__name__}:append_bot_message - Stored message_id={message.id} "
            f"sequence_number={sequence_number}"
        )
        return self.to_safe_message(message)

    async def mark_bot_failed(self, user_id: str, session_id: UUID) -> ChatSessionModel:
        """Record that the bot could not answer: waiting_for_bot -> failed."""
        logger.warning(f"{__name__}:mark_bot_failed - session_id={session_id}")
        return await self.session_service.transition(
            session_id, user_id, SessionStatus.FAILED
        )

    async def retry_failed_session(
        self,
        user_id: str,
        session_id: UUID,
        text: str,
    ) -> SafeChatMessage:
        """
        Reactivate a failed session and send the user's message again.

        Args:
            user_id: Authenticated user id
            session_id: Failed session
            text: Validated message text

        Returns:
            The newly stored user message, decrypted

        Raises:
            SessionNotFoundError: Session absent or not owned
            SessionNotFailedError: Session is not in failed
        """
        session = await self._load_session(session_id, user_id)
        if session.status != SessionStatus.FAILED:
            raise SessionNotFailedError(session_id, session.status.value)

        await self.session_service.transition(session_id, user_id, SessionStatus.ACTIVE)
        return await self.append_user_message(user_id, session_id, text)

    async def list_messages(
        self,
        user_id: str,
        session_id: UUID,
        limit: int = 10,
        cursor: UUID | None = None,
    ) -> PaginatedSessionMessages:
        """
        Page through a session's history, newest first.

        Args:
            user_id: Authenticated user id
            session_id: Session to read
            limit: Page size
            cursor: Id of the last message of the previous page

        Returns:
            PaginatedSessionMessages with has_more, next_cursor and session_status

        Raises:
            SessionNotFoundError: Session absent or not owned
        """
        session = await self._load_session(session_id, user_id)
        rows = await chat_message_crud.get_page(
            self.db, session_id, limit=limit + 1, cursor=cursor
        )

        has_more = len(rows) > limit
        page = list(rows[:limit])
        return PaginatedSessionMessages(
            messages=[self.to_safe_message(m) for m in page],
            has_more=has_more,
            next_cursor=page[-1].id if has_more and page else None,
            session_status=session.status,
        )

    async def soft_delete_message(self, user_id: str, message_id: UUID) -> None:
        """
        Hide a message from history without freeing its sequence number.

        Raises:
            MessageNotFoundError: Message absent or not owned
        """
        deleted = await chat_message_crud.soft_delete(self.db, message_id, user_id)
        if not deleted:
            await self.db.rollback()
            raise MessageNotFoundError(message_id)
        await self.db.commit()

    async def get_bot_reply(
        self,
        user_id: str,
        session_id: UUID,
        latest_user_message_id: UUID | None = None,
    ) -> BotReplyResult:
        """
        Return the bot's answer to the user's latest message, if it has arrived.

        A bot message only counts when its sequence number is greater than the
        reference user message's. Finding one flips the session back to
        active (idempotently).

        Args:
            user_id: Authenticated user id
            session_id: Session being polled
            latest_user_message_id: Reference user message; falls back to the
                latest user message when absent or not found

        Returns:
            BotReplyResult; message is None while the reply is pending
        """
        session = await chat_session_crud.get_for_user(self.db, session_id, user_id)
        if session is None:
            return BotReplyResult()
        if session.status not in _POLLABLE_STATUSES:
            return BotReplyResult(session_status=session.status)

        reference = None
        if latest_user_message_id is not None:
            reference = await chat_message_crud.get_in_session(
                self.db, latest_user_message_id, session_id
            )
        if reference is None:
            reference = await chat_message_crud.get_latest_by_role(
                self.db, session_id, MessageRole.USER
            )
        if reference is None:
            return BotReplyResult(session_status=session.status)

        bot_message = await chat_message_crud.get_latest_by_role(
            self.db, session_id, MessageRole.BOT
        )
        if bot_message is None or bot_message.sequence_number <= reference.sequence_number:
            return BotReplyResult(session_status=session.status)

        reply = self.to_safe_message(bot_message)
        try:
            updated = await self.session_service.transition(
                session_id, user_id, SessionStatus.ACTIVE, allow_noop=True
            )
        except InvalidTransitionError:
            fresh = await chat_session_crud.get_for_user(self.db, session_id, user_id)
            logger.info(
                f"{__name__}:get_bot_reply - Session left pollable states session_id={session_id}"
            )
            return BotReplyResult(session_status=fresh.status if fresh else None)

        return BotReplyResult(message=reply, session_status=updated.status)
