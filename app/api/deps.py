"""Shared FastAPI dependencies for API routes."""

from __future__ import annotations

from fastapi import Cookie, Depends, Header, Request
from sqlalchemy.orm import Session

from app.config import get_settings
from app.db.session import get_db  # re-export
from app.schemas.auth import UserContext
from app.services.analysis_store import AnalysisStore
from app.services.auth import get_user_context_from_token

__all__ = [
    "AUTH_COOKIE",
    "get_db",
    "get_store",
    "get_user_context",
    "public_origin",
    "webhook_callback_url",
]

# Cookie name for browser sessions
AUTH_COOKIE = "access_token"


def get_store(db: Session = Depends(get_db)) -> AnalysisStore:
    return AnalysisStore(db)


def get_user_context(
    authorization: str | None = Header(None),
    access_token: str | None = Cookie(None),
) -> UserContext:
    """Return the request's user context; anonymous when no valid token is present.

    Checks (in order):
    1. Authorization: Bearer <token> header
    2. access_token cookie
    """
    token: str | None = None

    # Check Authorization header
    if authorization and authorization.startswith("Bearer "):
        token = authorization[len("Bearer ") :]

    # Fall back to cookie
    if token is None and access_token:
        token = access_token

    return get_user_context_from_token(token)


def public_origin(request: Request) -> str:
    """Origin used for absolute links: PUBLIC_BASE_URL, else the request's own."""
    configured = get_settings().public_base_url
    if configured:
        return configured.rstrip("/")
    return str(request.base_url).rstrip("/")


def webhook_callback_url(request: Request) -> str:
    return f"{public_origin(request)}/webhook"
