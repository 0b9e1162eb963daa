"""
End-to-end service scenarios.

Scenario A: open a session, send a message, get blocked, receive the reply.
Scenario B: recover a failed session with retry.

System role: Verification of the session/message protocol as a whole
"""

import pytest

from companion_chat.boundary.db.models.chat_session_model import SessionStatus
from companion_chat.core.exceptions import SessionNotFailedError
from companion_chat.core.session_state import SessionWaitingForBotError


async def test_scenario_message_then_poll_reply(message_service, session_service, user_id) -> None:
    # Open a session
    opened = await session_service.get_or_create_active_session(user_id)
    assert opened.created is True
    session_id = opened.session.id

    # First message goes through and the session waits for the bot
    user_message = await message_service.append_user_message(
        user_id, session_id, "I've been feeling stressed about exams"
    )
    assert user_message.sequence_number == 0

    # A second message is refused while the bot is working
    with pytest.raises(SessionWaitingForBotError):
        await message_service.append_user_message(user_id, session_id, "Hello? Are you there?")

    # Polling before the reply reports pending
    pending = await message_service.get_bot_reply(user_id, session_id, user_message.id)
    assert pending.message is None
    assert pending.session_status == SessionStatus.WAITING_FOR_BOT

    # The worker answers at sequence 1
    bot_message = await message_service.append_bot_message(
        user_id, session_id, "That sounds hard. What part worries you most?"
    )
    assert bot_message.sequence_number == 1

    # Polling now returns the reply and reactivates the session
    reply = await message_service.get_bot_reply(user_id, session_id, user_message.id)
    assert reply.message.id == bot_message.id
    assert reply.session_status == SessionStatus.ACTIVE

    # Re-opening returns the same session
    again = await session_service.get_or_create_active_session(user_id)
    assert again.created is False
    assert again.session.id == session_id


async def test_scenario_retry_failed_session(message_service, session_service, user_id) -> None:
    opened = await session_service.get_or_create_active_session(user_id)
    session_id = opened.session.id
    await message_service.append_user_message(user_id, session_id, "Can we talk about sleep?")

    # The worker gives up
    failed = await message_service.mark_bot_failed(user_id, session_id)
    assert failed.status == SessionStatus.FAILED

    # Retry sends a fresh message and the session waits again
    retried = await message_service.retry_failed_session(
        user_id, session_id, "Can we talk about sleep?"
    )
    assert retried.sequence_number == 1
    session = await session_service.get_session(session_id, user_id)
    assert session.status == SessionStatus.WAITING_FOR_BOT

    # A second retry is refused because the session is no longer failed
    with pytest.raises(SessionNotFailedError):
        await message_service.retry_failed_session(user_id, session_id, "Can we talk about sleep?")
