"""
auth/service.py -- Registration, login, logout and session resolution.

Every function takes the UserStore explicitly; nothing here reads request or
process-global state. The web layer owns cookies, this module owns the rules.

Security:
  login() returns the same AuthenticationError for an unknown email and for a
  wrong password, and runs bcrypt in both cases (against _DUMMY_HASH for the
  unknown email) so neither the message nor the timing tells them apart.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError

from auth.forms import LOGIN_MESSAGES, REGISTER_MESSAGES, LoginForm, RegisterForm
from auth.models import SessionPrincipal, SessionRecord, User
from auth.store import UserStore
from auth.tokens import (
    _DUMMY_HASH,
    generate_session_token,
    hash_password,
    hash_session_token,
    session_expiry,
    verify_password,
)
from core.errors import AuthenticationError, ConflictError, ValidationError, field_errors

logger = logging.getLogger("movieapp.auth")


def _echo(values: dict[str, Any]) -> dict[str, Any]:
    """Submitted values safe to send back to the browser (no password)."""
    return {k: v for k, v in values.items() if k != "password"}


def register(store: UserStore, username: str, email: str, password: str) -> None:
    """Create a new account.

    Raises ValidationError for bad input and ConflictError when the username or
    email is taken. The plaintext password is hashed before it reaches the store.
    """
    submitted = {"username": username, "email": email, "password": password}
    try:
        form = RegisterForm.model_validate(submitted)
    except PydanticValidationError as exc:
        raise ValidationError(field_errors(exc, REGISTER_MESSAGES), _echo(submitted)) from exc

    if store.exists(form.username, form.email):
        raise ConflictError()

    user = User(username=form.username, email=form.email, hashed_password=hash_password(form.password))
    try:
        user_id = store.create_user(user)
    except IntegrityError as exc:
        # Lost a race with a concurrent registration for the same identity.
        raise ConflictError() from exc
    logger.info("Registered user %s (id=%d)", form.username, user_id)


def login(store: UserStore, email: str, password: str) -> tuple[str, SessionPrincipal]:
    """Verify credentials and open a server-side session.

    Returns (raw_token, principal). The raw token goes into the session cookie;
    only its HMAC is persisted.
    """
    submitted = {"email": email, "password": password}
    try:
        form = LoginForm.model_validate(submitted)
    except PydanticValidationError as exc:
        raise ValidationError(field_errors(exc, LOGIN_MESSAGES), _echo(submitted)) from exc

    user = store.get_by_email(form.email)
    if user is None:
        # Equalize timing -- do NOT return before running bcrypt
        verify_password(form.password, _DUMMY_HASH)
        logger.info("Failed login for unknown email")
        raise AuthenticationError()
    if not verify_password(form.password, user.hashed_password):
        logger.info("Failed login for user id=%d", user.id)
        raise AuthenticationError()

    token = generate_session_token()
    record = SessionRecord(
        token_hash=hash_session_token(token),
        user_id=user.id,
        username=user.username,
        email=user.email,
        expires_at=session_expiry(),
    )
    store.create_session(record)
    logger.info("User %s logged in", user.username)
    return token, record.principal()


def logout(store: UserStore, token: Optional[str]) -> None:
    """Destroy the session behind token. No token or an unknown token is a no-op."""
    if not token:
        return
    if store.delete_session(hash_session_token(token)):
        logger.info("Session closed")


def resolve_principal(store: UserStore, token: Optional[str]) -> Optional[SessionPrincipal]:
    """Return the principal for an unexpired session token, else None."""
    if not token:
        return None
    record = store.get_session(hash_session_token(token))
    return record.principal() if record is not None else None
