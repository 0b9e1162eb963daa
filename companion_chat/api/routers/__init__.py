"""API routers."""

from .health import router as health_router
from .messages import router as messages_router
from .sessions import router as sessions_router

__all__ = [
    "health_router",
    "messages_router",
    "sessions_router",
]
