"""
auth/forms.py -- Pydantic models for the register and login forms.

These models are the input contract for auth.service. They are separate from
the dataclasses in auth/models.py, which own the stored representation.
"""

from typing import Annotated

from pydantic import BaseModel, BeforeValidator, EmailStr, Field, field_validator

MIN_PASSWORD_LENGTH = 6
# bcrypt only looks at the first 72 bytes of a password.
MAX_PASSWORD_BYTES = 72

REGISTER_MESSAGES: dict[str, str] = {
    "username": "Username is required.",
    "email": "Enter a valid email address.",
    "password": f"Password must be at least {MIN_PASSWORD_LENGTH} characters.",
}

LOGIN_MESSAGES: dict[str, str] = {
    "email": "Enter a valid email address.",
    "password": "Password is required.",
}


def _strip(v):
    return v.strip() if isinstance(v, str) else v


_Email = Annotated[EmailStr, BeforeValidator(_strip)]


class RegisterForm(BaseModel):
    """Fields submitted by POST /register. Passwords are never stripped."""

    username: Annotated[str, BeforeValidator(_strip), Field(min_length=1, max_length=255)]
    email: _Email
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)

    @field_validator("password")
    @classmethod
    def password_within_bcrypt_limit(cls, v: str) -> str:
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
        return v


class LoginForm(BaseModel):
    """Fields submitted by POST /login."""

    email: _Email
    password: str = Field(min_length=1)
