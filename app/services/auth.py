"""Authentication service: JWT tokens issued by the external login provider.

There is no user table. The provider signs a token with the shared
SECRET_KEY whose ``sub`` claim is the username and whose
``profile_image_url`` claim is the avatar URL.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from app.config import get_settings
from app.schemas.auth import AuthUser, UserContext

# JWT configuration
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_HOURS = 24 * 30


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT access token."""
    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(hours=ACCESS_TOKEN_EXPIRE_HOURS)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and validate a JWT token. Returns payload or None."""
    settings = get_settings()
    if not settings.secret_key:
        return None
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
        return payload
    except JWTError:
        return None


def get_user_context_from_token(token: str | None) -> UserContext:
    """Build the request's UserContext. Invalid or missing tokens are anonymous."""
    if not token:
        return UserContext()
    payload = decode_access_token(token)
    if payload is None:
        return UserContext()
    username: Optional[str] = payload.get("sub")
    if not username:
        return UserContext()
    user = AuthUser(
        username=username,
        profile_image_url=payload.get("profile_image_url") or "",
    )
    return UserContext(authenticated=True, user=user)
