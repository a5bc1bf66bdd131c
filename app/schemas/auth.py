"""Request/response schemas for authentication."""

from pydantic import BaseModel, Field

from app.core.security import PASSWORD_MAX_LEN


class LoginRequest(BaseModel):
    """Credentials for login; `login` is a username or an email."""

    login: str = Field(..., min_length=1, max_length=320, description="Username or email")
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN, description="Password")


class TokenPair(BaseModel):
    """Access and refresh tokens issued together."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")
