"""
Stale session sweep.

Moves sessions stuck in waiting_for_bot past CHAT_STALE_WAITING_AFTER_SECONDS
to failed so their users can retry. Scheduling (cron, EventBridge) is
deployment configuration.

Usage:
    python -m companion_chat.workers.stale_session_sweeper

Dependencies: companion_chat.application.services, companion_chat.configs
System role: Timeout policy for waiting_for_bot sessions
"""

import asyncio
import logging
from datetime import timedelta
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from companion_chat.application.services import SessionService
from companion_chat.boundary.db.connection import (
    get_async_engine,
    get_async_session_factory,
)
from companion_chat.configs import get_settings
from companion_chat.observability.logger import configure_logging

logger = logging.getLogger(__name__)


async def sweep(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    older_than: timedelta | None = None,
) -> int:
    """
    Run one sweep.

    Args:
        session_factory: Factory for a database session (defaults to the app's)
        older_than: Override of the configured staleness threshold

    Returns:
        Number of sessions moved to failed
    """
    settings = get_settings()
    if session_factory is None:
        session_factory = get_async_session_factory()
    if older_than is None:
        older_than = timedelta(seconds=settings.chat.stale_waiting_after_seconds)

    async with session_factory() as db:
        service = SessionService(db=db)
        failed = await service.fail_stale_waiting_sessions(older_than)

    logger.info("%s:sweep - Moved %d stale sessions to failed", __name__, failed)
    return failed


async def _run() -> int:
    try:
        return await sweep()
    finally:
        await get_async_engine().dispose()


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """Scheduled Lambda entry point."""
    configure_logging(get_settings().log_level)
    return {"failed_sessions": asyncio.run(_run())}


if __name__ == "__main__":
    configure_logging(get_settings().log_level)
    asyncio.run(_run())
