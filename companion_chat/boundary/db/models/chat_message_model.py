"""
Chat message ORM model.

Encrypted user and bot messages ordered by a per-session sequence number.

Dependencies: sqlalchemy, companion_chat.boundary.db.base
System role: Message persistence and the one-outstanding-turn constraint
"""

import enum
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from companion_chat.boundary.db.base import Base, TimestampMixin, UUIDMixin, enum_values

SEQUENCE_CONSTRAINT = "uq_chat_messages_session_sequence"


class MessageRole(str, enum.Enum):
    """Message author."""

    USER = "user"
    BOT = "bot"


class MessageStatus(str, enum.Enum):
    """Informational delivery status."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class ChatMessageModel(Base, UUIDMixin, TimestampMixin):
    """
    Chat message ORM model.

    Attributes:
        id: UUID primary key (auto-generated)
        session_id: Owning session (cascade delete)
        user_id: Owning user
        role: MessageRole
        content_encrypted: {"iv", "content", "tag"} hex strings
        status: MessageStatus
        sequence_number: Position in the session, 0-based, gapless
        is_deleted: Soft-delete flag
        created_at: Creation timestamp (UTC)

    Constraints:
        uq_chat_messages_session_sequence: UNIQUE(session_id, sequence_number);
        rejects the loser when two appends compute the same next number.
    """

    __tablename__ = "chat_messages"
    __table_args__ = (
        UniqueConstraint(
            "session_id",
            "sequence_number",
            name=SEQUENCE_CONSTRAINT,
        ),
        CheckConstraint("sequence_number >= 0", name="ck_chat_messages_sequence_non_negative"),
        Index("ix_chat_messages_session_created", "session_id", "created_at", "id"),
        Index("ix_chat_messages_session_role_seq", "session_id", "role", "sequence_number"),
    )

    session_id: Mapped[UUID] = mapped_column(
        ForeignKey("chat_sessions.id", ondelete="CASCADE"),
        nullable=False,
    )

    user_id: Mapped[str] = mapped_column(String(255), nullable=False)

    role: Mapped[MessageRole] = mapped_column(
        Enum(MessageRole, native_enum=False, length=16, values_callable=enum_values),
        nullable=False,
    )

    content_encrypted: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        doc="AES-GCM envelope: iv, content, tag (hex)",
    )

    status: Mapped[MessageStatus] = mapped_column(
        Enum(MessageStatus, native_enum=False, length=16, values_callable=enum_values),
        nullable=False,
        default=MessageStatus.PENDING,
    )

    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False)

    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    session = relationship("ChatSessionModel", back_populates="messages")
