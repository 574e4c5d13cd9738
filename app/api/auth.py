"""Browser login routes.

Login itself happens at the external provider (AUTH_LOGIN_URL). The provider
sends the user back to /callback with a signed access token, which is stored
in an httponly cookie.
"""

from __future__ import annotations

import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse, RedirectResponse

from app.api.deps import AUTH_COOKIE, public_origin
from app.config import get_settings
from app.services.auth import ACCESS_TOKEN_EXPIRE_HOURS, get_user_context_from_token

logger = logging.getLogger(__name__)

router = APIRouter()


def safe_redirect_target(redirect_to: str | None) -> str:
    """Only same-site relative paths are allowed as post-login targets."""
    if not redirect_to or not redirect_to.startswith("/") or redirect_to.startswith("//"):
        return "/"
    return redirect_to


@router.get("/login")
def login(request: Request, redirect_to: str | None = None):
    """Send the browser to the external login provider."""
    settings = get_settings()
    if not settings.auth_login_url:
        return PlainTextResponse("Login is not configured", status_code=503)

    target = safe_redirect_target(redirect_to)
    callback = f"{public_origin(request)}/callback?{urlencode({'redirect_to': target})}"
    separator = "&" if "?" in settings.auth_login_url else "?"
    return RedirectResponse(
        url=f"{settings.auth_login_url}{separator}{urlencode({'redirect_uri': callback})}",
        status_code=302,
    )


@router.get("/callback")
def callback(access_token: str | None = None, redirect_to: str | None = None):
    """Store the provider's token in a cookie and continue to redirect_to."""
    ctx = get_user_context_from_token(access_token)
    if not ctx.authenticated:
        logger.warning("Login callback with missing or invalid token")
        return PlainTextResponse("Invalid login token", status_code=401)

    logger.info("User %s logged in", ctx.username)
    response = RedirectResponse(url=safe_redirect_target(redirect_to), status_code=302)
    response.set_cookie(
        key=AUTH_COOKIE,
        value=access_token,
        httponly=True,
        samesite="lax",
        max_age=60 * 60 * ACCESS_TOKEN_EXPIRE_HOURS,
        path="/",
    )
    return response


@router.get("/logout")
def logout():
    """Clear the authentication cookie."""
    response = RedirectResponse(url="/", status_code=302)
    response.delete_cookie(key=AUTH_COOKIE, path="/")
    return response
