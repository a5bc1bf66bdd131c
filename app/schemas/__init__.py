"""Pydantic request/response schemas."""

from app.schemas.auth import LoginRequest, TokenPair
from app.schemas.user import UserCreate, UserRead, UserUpdate

__all__ = [
    "LoginRequest",
    "TokenPair",
    "UserCreate",
    "UserRead",
    "UserUpdate",
]
