"""
Dependency injection container.

Factory functions for FastAPI dependencies.

Dependencies: companion_chat.configs, companion_chat.application, companion_chat.boundary
System role: DI container for service injection
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from companion_chat.application.services import MessageService, SessionService
from companion_chat.boundary.aws.sqs_publisher import EventPublisher, SQSEventPublisher
from companion_chat.boundary.crypto.content_cipher import ContentCipher
from companion_chat.boundary.db import get_async_db
from companion_chat.configs import Settings, get_settings


@lru_cache
def get_settings_dependency() -> Settings:
    """Get settings singleton."""
    return get_settings()


@lru_cache
def get_content_cipher() -> ContentCipher:
    """Get content cipher singleton keyed from encryption settings."""
    encryption = get_settings().encryption
    return ContentCipher(encryption.key, iv_length=encryption.iv_length)


@lru_cache
def get_event_publisher() -> EventPublisher:
    """Get SQS event publisher singleton."""
    events = get_settings().events
    return SQSEventPublisher(queue_url=events.queue_url, region=events.region)


def get_session_service(
    db: AsyncSession = Depends(get_async_db),
    settings: Settings = Depends(get_settings_dependency),
) -> SessionService:
    """
    Get session service instance.

    Args:
        db: Async database session (injected via Depends)
        settings: Application settings (injected via Depends)

    Returns:
        SessionService: Session service instance
    """
    return SessionService(
        db=db,
        max_attempts=settings.chat.transition_max_attempts,
        backoff_seconds=settings.chat.transition_backoff_seconds,
    )


def get_message_service(
    db: AsyncSession = Depends(get_async_db),
    settings: Settings = Depends(get_settings_dependency),
    cipher: ContentCipher = Depends(get_content_cipher),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> MessageService:
    """
    Get message service instance sharing the request's database session.

    Args:
        db: Async database session (injected via Depends)
        settings: Application settings (injected via Depends)
        cipher: Content cipher (injected via Depends)
        publisher: Bot worker event publisher (injected via Depends)

    Returns:
        MessageService: Message service instance
    """
    session_service = SessionService(
        db=db,
        max_attempts=settings.chat.transition_max_attempts,
        backoff_seconds=settings.chat.transition_backoff_seconds,
    )
    return MessageService(
        db=db,
        cipher=cipher,
        publisher=publisher,
        session_service=session_service,
        event_type=settings.events.event_type,
    )
