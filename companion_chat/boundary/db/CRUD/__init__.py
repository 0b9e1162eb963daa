"""
CRUD operations for database models.

Exports base CRUD class and model-specific CRUD implementations
with pre-instantiated singletons for direct use.

Usage:
    from companion_chat.boundary.db.CRUD import chat_session_crud, chat_message_crud

    session = await chat_session_crud.get_for_user(db, session_id, user_id)
"""

from companion_chat.boundary.db.CRUD.base_crud import BaseCRUD
from companion_chat.boundary.db.CRUD.chat_message_crud import (
    ChatMessageCRUD,
    is_sequence_collision,
    chat_message_crud,
)
from companion_chat.boundary.db.CRUD.chat_session_crud import (
    ChatSessionCRUD,
    chat_session_crud,
)

__all__ = [
    "BaseCRUD",
    "ChatSessionCRUD",
    "chat_session_crud",
    "ChatMessageCRUD",
    "chat_message_crud",
    "is_sequence_collision",
]
