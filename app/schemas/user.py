"""Input and output schemas for user accounts."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl, field_validator

from app.core.security import (
    BCRYPT_MAX_BYTES,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
)

VerificationMethod = Literal["email", "phone"]


def normalize_username(value: str) -> str:
    """Usernames are stored trimmed and lowercased."""
    return value.strip().lower()


def normalize_email(value: str) -> str:
    """Emails are stored trimmed and lowercased."""
    return value.strip().lower()


def _strip_or_none(value: object) -> object:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")
    return value


class UserCreate(BaseModel):
    """Registration payload. Normalizes username, email and full name."""

    username: str = Field(..., min_length=USERNAME_MIN_LEN, max_length=USERNAME_MAX_LEN)
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
    verification_method: VerificationMethod = "email"
    avatar: HttpUrl | None = None
    phone: str | None = Field(default=None, max_length=32)
    shipping_address: str | None = None
    billing_address: str | None = None

    @field_validator("username", mode="before")
    @classmethod
    def _normalize_username(cls, v: object) -> object:
        return normalize_username(v) if isinstance(v, str) else v

    @field_validator("email", mode="before")
    @classmethod
    def _strip_email(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("full_name", mode="before")
    @classmethod
    def _strip_full_name(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("phone", "shipping_address", "billing_address", mode="before")
    @classmethod
    def _strip_optional(cls, v: object) -> object:
        return _strip_or_none(v)

    @field_validator("password")
    @classmethod
    def _password_bytes(cls, v: str) -> str:
        return _check_password_bytes(v)


class UserUpdate(BaseModel):
    """Profile changes; credentials are changed through set_password only."""

    username: str | None = Field(
        default=None, min_length=USERNAME_MIN_LEN, max_length=USERNAME_MAX_LEN
    )
    email: EmailStr | None = None
    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    verification_method: VerificationMethod | None = None
    avatar: HttpUrl | None = None
    phone: str | None = Field(default=None, max_length=32)
    shipping_address: str | None = None
    billing_address: str | None = None

    @field_validator("username", mode="before")
    @classmethod
    def _normalize_username(cls, v: object) -> object:
        return normalize_username(v) if isinstance(v, str) else v

    @field_validator("email", mode="before")
    @classmethod
    def _strip_email(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str | None) -> str | None:
        return normalize_email(v) if v is not None else None

    @field_validator("full_name", mode="before")
    @classmethod
    def _strip_full_name(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("phone", "shipping_address", "billing_address", mode="before")
    @classmethod
    def _strip_optional(cls, v: object) -> object:
        return _strip_or_none(v)


class UserRead(BaseModel):
    """Public view of an account (no hash, passcode or token)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    email: str
    full_name: str
    verification_method: str
    avatar: str | None = None
    phone: str | None = None
    shipping_address: str | None = None
    billing_address: str | None = None
    orders: list[str] = Field(default_factory=list)
    wishlist: list[str] = Field(default_factory=list)
    is_verified: bool
    created_at: datetime
    updated_at: datetime
