"""
Session API endpoints.

Routes:
- POST /session - Get or create the caller's in-progress session
- PATCH /session/{session_id}/close - End a session

Dependencies: companion_chat.application.services, companion_chat.models
System role: Session management HTTP API
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status

from companion_chat.api.deps import (
    AuthenticatedUser,
    get_current_user,
    get_session_service,
)
from companion_chat.application.services import SessionService
from companion_chat.models.common import ApiResponse
from companion_chat.models.session import SessionClosedResponse, SessionResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/session", tags=["session"])


@router.post(
    "",
    response_model=ApiResponse[SessionResponse],
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def get_or_create_session(
    user: AuthenticatedUser = Depends(get_current_user),
    session_service: SessionService = Depends(get_session_service),
) -> ApiResponse[SessionResponse]:
    """
    Return the caller's in-progress session, creating one if needed.

    Args:
        user: Authenticated caller
        session_service: Injected SessionService

    Returns:
        ApiResponse: CHAT_SESSION_CREATED or CHAT_SESSION_RETRIEVED
    """
    result = await session_service.get_or_create_active_session(user.user_id)

    if result.created:
        code, message = "CHAT_SESSION_CREATED", "Chat session created successfully"
    else:
        code, message = "CHAT_SESSION_RETRIEVED", "Active chat session retrieved successfully"

    return ApiResponse[SessionResponse](
        success=True,
        code=code,
        message=message,
        data=SessionResponse.model_validate(result.session),
    )


@router.patch(
    "/{session_id}/close",
    response_model=ApiResponse[SessionClosedResponse],
    response_model_exclude_none=True,
)
async def close_session(
    session_id: UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    session_service: SessionService = Depends(get_session_service),
) -> ApiResponse[SessionClosedResponse]:
    """
    End a session.

    Args:
        session_id: Session UUID
        user: Authenticated caller
        session_service: Injected SessionService

    Returns:
        ApiResponse: CHAT_SESSION_CLOSED

    Raises:
        SessionNotFoundError: Session absent or not owned (404)
        InvalidTransitionError: Session already terminal (400)
    """
    session = await session_service.close_session(session_id, user.user_id)
    return ApiResponse[SessionClosedResponse](
        success=True,
        code="CHAT_SESSION_CLOSED",
        message="Chat session closed successfully",
        data=SessionClosedResponse.model_validate(session),
    )
