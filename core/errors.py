"""
core/errors.py -- Application error taxonomy.

Services raise these; the web layer decides how each one is surfaced:
  ValidationError       -- re-render the form with field messages and the input
  ConflictError         -- re-render the form with a single message
  AuthenticationError   -- re-render the login form with a generic message
  UnauthenticatedError  -- redirect to /login
  ForbiddenError        -- redirect to /movies
  NotFoundError         -- redirect to /movies

Forbidden and NotFound are deliberately indistinguishable to the browser.

Layer rule: core/ imports only stdlib + third-party libraries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError


@dataclass(frozen=True)
class FieldError:
    """One message attached to one form field (field=None for form-level)."""

    field: Optional[str]
    msg: str


class AppError(Exception):
    """Base class for every error a request handler is expected to recover from."""

    default_message = "Request failed."

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed or out-of-range input.

    Carries everything a form needs to re-display itself:
      errors  -- field-level messages
      values  -- the submitted values, unchanged
      current -- the persisted record the submission targeted (edit forms)
    """

    default_message = "Invalid input."

    def __init__(
        self,
        errors: list[FieldError],
        values: Optional[dict[str, Any]] = None,
        current: Any = None,
    ) -> None:
        super().__init__(errors[0].msg if errors else None)
        self.errors = errors
        self.values = dict(values or {})
        self.current = current

    def for_field(self, name: str) -> list[str]:
        return [e.msg for e in self.errors if e.field == name]


class ConflictError(AppError):
    default_message = "Username or email already exists."


class AuthenticationError(AppError):
    default_message = "Invalid credentials"


class UnauthenticatedError(AppError):
    default_message = "Authentication required."


class ForbiddenError(AppError):
    default_message = "You do not have permission to change this resource."


class NotFoundError(AppError):
    default_message = "Not found."


def field_errors(exc: PydanticValidationError, messages: dict[str, str]) -> list[FieldError]:
    """Collapse a pydantic ValidationError into one FieldError per field.

    messages maps a field name to the user-facing text for that field. A
    ValueError raised by a custom validator keeps its own text. Anything else
    missing from the map falls back to pydantic's message. Field order follows
    the order pydantic reported them in.
    """
    seen: set[str] = set()
    out: list[FieldError] = []
    for err in exc.errors():
        loc = err.get("loc") or ()
        name = str(loc[0]) if loc else None
        key = name or ""
        if key in seen:
            continue
        seen.add(key)
        ctx_error = (err.get("ctx") or {}).get("error")
        if err.get("type") == "value_error" and ctx_error is not None:
            msg = str(ctx_error)
        else:
            msg = messages.get(key, err.get("msg", "Invalid value."))
        out.append(FieldError(field=name, msg=msg))
    return out
