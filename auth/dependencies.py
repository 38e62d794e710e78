"""
auth/dependencies.py -- FastAPI Depends() helpers for session authentication.

The session_id cookie carries an opaque token; the principal is rehydrated
from the server-side session row on every request and handed to the route as
an explicit parameter:

    @router.get("/dashboard")
    def dashboard(request: Request, principal: Optional[SessionPrincipal] = Depends(try_get_principal)): ...

try_get_principal() is the soft variant (returns None when anonymous).
get_principal() wraps it and raises UnauthenticatedError, which the app's
exception handler turns into a redirect to /login.

Layer rule: no imports from web/ or catalog/.
"""

from __future__ import annotations

from fastapi import Request

from auth.models import SessionPrincipal
from auth.service import resolve_principal
from auth.tokens import SESSION_COOKIE
from core.errors import UnauthenticatedError


def try_get_principal(request: Request) -> SessionPrincipal | None:
    """Return the session principal for this request, or None if anonymous.

    Never raises on a missing, unknown or expired token.
    """
    return resolve_principal(request.app.state.user_store, request.cookies.get(SESSION_COOKIE))


def get_principal(request: Request) -> SessionPrincipal:
    """Require a logged-in principal. Raises UnauthenticatedError otherwise."""
    principal = try_get_principal(request)
    if principal is None:
        raise UnauthenticatedError()
    return principal
