"""
Lambda handler for SQS-triggered bot replies.

Consumes CHAT_MESSAGE_CREATED events, asks the configured responder for the
reply text and appends it as the next bot message. A responder failure
moves the session to failed so the user can retry.

Environment variables:
- CHAT_BOT_RESPONDER: import path 'module:function' of the async responder
- MESSAGE_CONTENT_ENCRYPTION_KEY, POSTGRES_*: shared with the API

Dependencies: companion_chat.application.services, companion_chat.models.events
System role: Lambda entry point for the worker-side message append
"""

import asyncio
import importlib
import logging
from typing import Any, Awaitable, Callable, Dict

from dotenv import load_dotenv
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from companion_chat.application.services import MessageService
from companion_chat.boundary.crypto.content_cipher import ContentCipher
from companion_chat.boundary.db.connection import (
    get_async_engine,
    get_async_session_factory,
)
from companion_chat.configs import get_settings
from companion_chat.core.exceptions import (
    InvalidTransitionError,
    SequenceConflictError,
    SessionNotFoundError,
)
from companion_chat.models.events import ChatMessageEvent
from companion_chat.observability.logger import configure_logging

# Load environment variables from .env if present
load_dotenv()

logger = logging.getLogger(__name__)

BotResponder = Callable[[ChatMessageEvent], Awaitable[str]]


class MessageParseError(Exception):
    """Raised when SQS message cannot be parsed."""

    pass


class BotResponderError(Exception):
    """Raised when the responder could not produce a reply."""

    pass


def parse_event_record(record: Dict[str, Any]) -> ChatMessageEvent:
    """
    Parse and validate an SQS record carrying a chat message event.

    Args:
        record: Single SQS record from event['Records']

    Returns:
        ChatMessageEvent: Validated event

    Raises:
        MessageParseError: Empty body, invalid JSON or schema mismatch
    """
    message_body = record.get("body")
    if not message_body:
        raise MessageParseError("Empty message body")

    try:
        return ChatMessageEvent.model_validate_json(message_body)
    except ValidationError as e:
        logger.error("%s:parse_event_record - ValidationError: %s", __name__, e)
        raise MessageParseError(f"Invalid message schema: {e}") from e


def load_responder(path: str | None) -> BotResponder:
    """
    Import the responder coroutine function from 'module:function'.

    Raises:
        ValueError: Path missing or malformed
    """
    if not path or ":" not in path:
        raise ValueError("CHAT_BOT_RESPONDER must be set to 'module:function'")
    module_name, func_name = path.split(":", 1)
    module = importlib.import_module(module_name)
    return getattr(module, func_name)


async def process_event(
    event: ChatMessageEvent,
    responder: BotResponder,
    session_factory: async_sessionmaker[AsyncSession],
    cipher: ContentCipher,
) -> None:
    """
    Produce and store the bot reply for one user message.

    A message that already has its reply is skipped without calling the
    responder.

    Args:
        event: Parsed CHAT_MESSAGE_CREATED event
        responder: Async callable returning the reply text
        session_factory: Factory for a fresh database session
        cipher: Content cipher shared with the API

    Raises:
        BotResponderError: Responder failed (session already moved to failed)
        SequenceConflictError: Another message took the bot's sequence number
    """
    async with session_factory() as db:
        service = MessageService(db=db, cipher=cipher)

        # SQS delivers at least once.
        if await service.is_answered(event.session_id, event.message_id):
            logger.info(
                "%s:process_event - Message already answered, skipping",
                __name__,
                extra={"session_id": str(event.session_id), "message_id": str(event.message_id)},
            )
            return

        try:
            reply = await responder(event)
        except Exception as e:
            logger.error(
                "%s:process_event - Responder failed: %s: %s",
                __name__,
                type(e).__name__,
                e,
                extra={"session_id": str(event.session_id), "message_id": str(event.message_id)},
            )
            await service.mark_bot_failed(event.user_id, event.session_id)
            raise BotResponderError(str(e)) from e

        await service.append_bot_message(
            event.user_id, event.session_id, reply, reply_to=event.message_id
        )


async def process_batch(
    event: Dict[str, Any],
    responder: BotResponder,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    cipher: ContentCipher | None = None,
) -> Dict[str, Any]:
    """
    Process every record in an SQS batch.

    Unparsable records, vanished sessions and responder failures are
    dropped after logging. Sequence conflicts and unexpected errors are
    reported back so SQS redelivers them.

    Returns:
        Dict with batchItemFailures for partial batch responses
    """
    if session_factory is None:
        session_factory = get_async_session_factory()
    if cipher is None:
        encryption = get_settings().encryption
        cipher = ContentCipher(encryption.key, iv_length=encryption.iv_length)

    failures: list[dict[str, str]] = []

    for record in event.get("Records", []):
        message_id = record.get("messageId")
        try:
            message = parse_event_record(record)
            await process_event(message, responder, session_factory, cipher)
            logger.info(
                "%s:process_batch - Bot reply stored",
                __name__,
                extra={"sqs_message_id": message_id, "session_id": str(message.session_id)},
            )
        except MessageParseError as e:
            logger.error("%s:process_batch - Dropping unparsable record %s: %s", __name__, message_id, e)
        except (BotResponderError, SessionNotFoundError, InvalidTransitionError) as e:
            logger.warning(
                "%s:process_batch - Record %s not answered: %s: %s",
                __name__,
                message_id,
                type(e).__name__,
                e,
            )
        except SequenceConflictError as e:
            logger.warning("%s:process_batch - Sequence conflict for record %s: %s", __name__, message_id, e)
            failures.append({"itemIdentifier": message_id})
        except Exception as e:
            logger.exception("%s:process_batch - %s: %s", __name__, type(e).__name__, e)
            failures.append({"itemIdentifier": message_id})

    return {"batchItemFailures": failures}


async def _run(event: Dict[str, Any]) -> Dict[str, Any]:
    responder = load_responder(get_settings().chat.bot_responder)
    try:
        return await process_batch(event, responder)
    finally:
        # Each invocation gets its own event loop; pooled connections must not outlive it.
        await get_async_engine().dispose()


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda handler for CHAT_MESSAGE_CREATED events.

    Args:
        event: SQS event with Records array
        context: Lambda context object

    Returns:
        Dict with batchItemFailures
    """
    configure_logging(get_settings().log_level)
    logger.info(
        "handler - Received SQS event",
        extra={"record_count": len(event.get("Records", []))},
    )
    return asyncio.run(_run(event))
