"""Auth session models shared by the auth adapter and the session service."""

from __future__ import annotations

import time
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

# Refresh a little before the server-side expiry.
EXPIRY_MARGIN_SECONDS = 30


class AuthEvent(str, Enum):
    """Auth state transitions broadcast to listeners."""

    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"


class AuthUser(BaseModel):
    """The authenticated account as reported by the auth backend."""

    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)

    def email_local_part(self) -> Optional[str]:
        """Return the part of the e-mail before ``@``, if any."""
        if not self.email:
            return None
        local = self.email.split("@", 1)[0]
        return local or None


class AuthSession(BaseModel):
    """Access/refresh token pair for the signed-in user."""

    access_token: str
    refresh_token: str
    expires_at: float
    user: AuthUser

    def is_expired(self, now: Optional[float] = None) -> bool:
        current = time.time() if now is None else now
        return current >= self.expires_at - EXPIRY_MARGIN_SECONDS


class SignUpResult(BaseModel):
    """Outcome of a sign-up call; ``session`` is absent until e-mail confirmation."""

    user: Optional[AuthUser] = None
    session: Optional[AuthSession] = None


__all__ = ["AuthEvent", "AuthUser", "AuthSession", "SignUpResult", "EXPIRY_MARGIN_SECONDS"]
