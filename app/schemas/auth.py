"""Authentication schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field


class AuthUser(BaseModel):
    """Identity supplied by the external login provider."""

    username: str = Field(..., min_length=1, max_length=255)
    profile_image_url: str = ""


class UserContext(BaseModel):
    """Authentication state of the current request."""

    authenticated: bool = False
    user: AuthUser | None = None

    @property
    def username(self) -> str | None:
        return self.user.username if self.user else None
