"""
Database table creation script.

Creates all tables defined in ORM models using SQLAlchemy metadata.

Dependencies: sqlalchemy, companion_chat.configs
System role: Database schema initialization

Usage:
    python -m companion_chat.boundary.db.create_tables
"""

import asyncio

from companion_chat.boundary.db.base import Base
from companion_chat.boundary.db.connection import get_async_engine

# Import all models to register them with Base.metadata
from companion_chat.boundary.db.models.chat_message_model import ChatMessageModel  # noqa: F401
from companion_chat.boundary.db.models.chat_session_model import ChatSessionModel  # noqa: F401


async def create_all_tables() -> None:
    """
    Create all database tables from registered ORM models.

    Idempotent: calls CREATE TABLE IF NOT EXISTS for each model, so safe
    to run multiple times. Existing tables remain unchanged. The partial
    unique index on in-progress sessions is created with the table.

    Raises:
        SQLAlchemyError: If database connection fails or table creation fails
    """
    engine = get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print("Chat tables created successfully.")


async def drop_all_tables() -> None:
    """
    Drop all database tables and their data.

    WARNING: Irreversible data loss. Only use in development environments.
    """
    engine = get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    print("All tables dropped successfully.")


if __name__ == "__main__":
    asyncio.run(create_all_tables())
