"""
Chat session ORM model.

One continuous conversation between a user and the bot. Carries the
status driven by the session state machine and an optimistic-lock
version counter.

Dependencies: sqlalchemy, companion_chat.boundary.db.base
System role: Session persistence and the one-in-progress-session invariant
"""

import enum
from uuid import UUID

from sqlalchemy import Enum, Index, Integer, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from companion_chat.boundary.db.base import Base, TimestampMixin, UUIDMixin, enum_values


class SessionStatus(str, enum.Enum):
    """
    Chat session states.

    ACTIVE: Accepting the next user message
    WAITING_FOR_BOT: A user message is awaiting the bot's reply
    FAILED: The bot could not answer; the user may retry
    ESCALATED: Handed to a human (terminal)
    ENDED: Closed (terminal)
    """

    ACTIVE = "active"
    WAITING_FOR_BOT = "waiting_for_bot"
    FAILED = "failed"
    ESCALATED = "escalated"
    ENDED = "ended"


IN_PROGRESS_STATUSES: frozenset[SessionStatus] = frozenset(
    {SessionStatus.ACTIVE, SessionStatus.WAITING_FOR_BOT, SessionStatus.FAILED}
)
TERMINAL_STATUSES: frozenset[SessionStatus] = frozenset(
    {SessionStatus.ESCALATED, SessionStatus.ENDED}
)

# Enum columns store member values (see enum_values)
_IN_PROGRESS_WHERE = text("status IN ('active', 'waiting_for_bot', 'failed')")


class ChatSessionModel(Base, UUIDMixin, TimestampMixin):
    """
    Chat session ORM model.

    Attributes:
        id: UUID primary key (auto-generated)
        user_id: Owning user (token subject)
        status: Current SessionStatus
        insight_id: Optional link to a derived insight record
        version: Optimistic-lock counter, bumped on every status write
        messages: Messages owned by this session (cascade delete)
        created_at: Session creation timestamp (UTC)
        updated_at: Last modification timestamp (UTC)

    Constraints:
        uq_chat_sessions_one_in_progress_per_user: partial UNIQUE on user_id
        for in-progress statuses; terminal sessions may accumulate freely.
    """

    __tablename__ = "chat_sessions"
    __table_args__ = (
        Index(
            "uq_chat_sessions_one_in_progress_per_user",
            "user_id",
            unique=True,
            postgresql_where=_IN_PROGRESS_WHERE,
            sqlite_where=_IN_PROGRESS_WHERE,
        ),
        Index("ix_chat_sessions_user_created", "user_id", "created_at"),
    )

    user_id: Mapped[str] = mapped_column(String(255), nullable=False)

    status: Mapped[SessionStatus] = mapped_column(
        Enum(SessionStatus, native_enum=False, length=32, values_callable=enum_values),
        nullable=False,
        default=SessionStatus.ACTIVE,
    )

    insight_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        nullable=True,
        default=None,
        doc="Derived insight record produced after the session ends",
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        doc="Optimistic concurrency counter",
    )

    messages = relationship(
        "ChatMessageModel",
        back_populates="session",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
