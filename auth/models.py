"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own domain
shape; stores and services do the work.

Layer rule: no imports from api/, web/, or catalog/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered account.

    username and email are each globally unique. hashed_password is a bcrypt
    hash; the plaintext is never stored anywhere. Users are immutable once
    created and no exposed operation deletes them.
    """

    username: str
    email: str
    hashed_password: str
    id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class SessionPrincipal:
    """The identity attached to the current request.

    Rehydrated from the session row on every request and passed explicitly into
    service calls. Deliberately has no password hash field.
    """

    id: int
    username: str
    email: str


@dataclass
class SessionRecord:
    """Server-side session row.

    token_hash is HMAC-SHA256(SECRET_KEY, raw_token). The raw token only ever
    lives in the client's session_id cookie.
    """

    token_hash: str
    user_id: int
    username: str
    email: str
    expires_at: str  # ISO 8601, UTC
    id: int | None = None
    created_at: str | None = None

    def principal(self) -> SessionPrincipal:
        return SessionPrincipal(id=self.user_id, username=self.username, email=self.email)
