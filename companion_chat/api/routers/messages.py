"""
Message API endpoints.

Routes:
- POST /message - Send a user message
- POST /message/retry - Resend after the bot failed
- GET /message/{session_id} - Paginated history
- GET /message/{session_id}/bot-response - Poll for the bot's reply

Dependencies: companion_chat.application.services, companion_chat.core, companion_chat.models
System role: Chat message HTTP API
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status

from companion_chat.api.deps import (
    AuthenticatedUser,
    get_current_user,
    get_message_service,
    get_settings_dependency,
)
from companion_chat.application.services import MessageService
from companion_chat.configs import Settings
from companion_chat.core.message_rules import validate_message_text
from companion_chat.models.common import ApiResponse
from companion_chat.models.message import (
    BotReplyResult,
    CreateMessageRequest,
    PaginatedSessionMessages,
    SafeChatMessage,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/message", tags=["message"])


def parse_page_size(raw: str | None, default: int, maximum: int) -> int:
    """Parse the limit query value; anything unparsable or out of range gives the default."""
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if value < 1 or value > maximum:
        return default
    return value


def parse_optional_uuid(raw: str | None) -> UUID | None:
    """Parse an optional id query value; malformed ids are treated as absent."""
    if not raw:
        return None
    try:
        return UUID(raw)
    except ValueError:
        return None


@router.post(
    "",
    response_model=ApiResponse[SafeChatMessage],
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_message(
    request: CreateMessageRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    message_service: MessageService = Depends(get_message_service),
    settings: Settings = Depends(get_settings_dependency),
) -> ApiResponse[SafeChatMessage]:
    """
    Send a user message; the session then waits for the bot.

    Raises:
        MessageValidationError: Text fails content rules (400)
        SessionNotFoundError: Session absent or not owned (404)
        SessionBlockedError: Session status refuses messages (409)
        SequenceConflictError: Concurrent message won (409)
    """
    text = validate_message_text(request.message, settings.chat.max_message_length)
    message = await message_service.append_user_message(
        user.user_id, request.session_id, text
    )
    return ApiResponse[SafeChatMessage](
        success=True,
        code="CHAT_MESSAGE_CREATED",
        message="Chat message created successfully",
        data=message,
    )


@router.post(
    "/retry",
    response_model=ApiResponse[SafeChatMessage],
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def retry_message(
    request: CreateMessageRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    message_service: MessageService = Depends(get_message_service),
    settings: Settings = Depends(get_settings_dependency),
) -> ApiResponse[SafeChatMessage]:
    """
    Reactivate a failed session and resend the message.

    Raises:
        SessionNotFailedError: Session is not failed (409)
    """
    text = validate_message_text(request.message, settings.chat.max_message_length)
    message = await message_service.retry_failed_session(
        user.user_id, request.session_id, text
    )
    return ApiResponse[SafeChatMessage](
        success=True,
        code="CHAT_SESSION_RETRIED",
        message="Chat session retried successfully",
        data=message,
    )


@router.get(
    "/{session_id}",
    response_model=ApiResponse[PaginatedSessionMessages],
    response_model_exclude_none=True,
)
async def list_messages(
    session_id: UUID,
    limit: str | None = None,
    last_message_id: str | None = None,
    user: AuthenticatedUser = Depends(get_current_user),
    message_service: MessageService = Depends(get_message_service),
    settings: Settings = Depends(get_settings_dependency),
) -> ApiResponse[PaginatedSessionMessages]:
    """
    Page through session history, newest first.

    Args:
        session_id: Session UUID
        limit: Page size, 1..max_page_size (invalid values use the default)
        last_message_id: Cursor from the previous page's next_cursor
    """
    page_size = parse_page_size(
        limit, settings.chat.default_page_size, settings.chat.max_page_size
    )
    page = await message_service.list_messages(
        user.user_id,
        session_id,
        limit=page_size,
        cursor=parse_optional_uuid(last_message_id),
    )
    return ApiResponse[PaginatedSessionMessages](
        success=True,
        code="CHAT_MESSAGES_RETRIEVED",
        message="Chat messages retrieved successfully",
        data=page,
    )


@router.get(
    "/{session_id}/bot-response",
    response_model=ApiResponse[BotReplyResult],
)
async def get_bot_response(
    session_id: UUID,
    latest_user_message_id: str | None = None,
    user: AuthenticatedUser = Depends(get_current_user),
    message_service: MessageService = Depends(get_message_service),
) -> ApiResponse[BotReplyResult]:
    """
    Poll for the bot's answer to the latest user message.

    data.message is null while the reply is pending; data.session_status is
    always present.
    """
    result = await message_service.get_bot_reply(
        user.user_id,
        session_id,
        latest_user_message_id=parse_optional_uuid(latest_user_message_id),
    )

    if result.has_reply:
        code, message = "BOT_RESPONSE_RETRIEVED", "Bot response retrieved successfully"
    else:
        code, message = "BOT_RESPONSE_PENDING", "Bot response is not available yet"

    return ApiResponse[BotReplyResult](success=True, code=code, message=message, data=result)
