"""
API routes module.

FastAPI routers for all chat bot HTTP endpoints.
"""

from fastapi import APIRouter

from .routers import health_router, messages_router, sessions_router

API_PREFIX = "/api/v1/chat-bot"

api_router = APIRouter()

# Include all routers
api_router.include_router(health_router)
api_router.include_router(sessions_router)
api_router.include_router(messages_router)

__all__ = ["API_PREFIX", "api_router"]
