"""API routes."""

from app.api.auth import router as auth_router
from app.api.mcp import router as mcp_router
from app.api.views import router as views_router
from app.api.webhook import router as webhook_router

__all__ = ["auth_router", "mcp_router", "views_router", "webhook_router"]
