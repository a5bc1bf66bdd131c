"""Password hashing and JWT creation/verification for authentication."""

from __future__ import annotations

import asyncio
import hashlib
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import bcrypt
import jwt

from app.core.config import settings as default_settings
from app.core.exceptions import HashingError, SigningError, TokenError

if TYPE_CHECKING:
    from app.core.config import Settings
    from app.models.user import User

# bcrypt only looks at the first 72 bytes of its input.
BCRYPT_MAX_BYTES = 72

# Min/max lengths for username and password validation.
USERNAME_MIN_LEN = 3
USERNAME_MAX_LEN = 255
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = BCRYPT_MAX_BYTES

ACCESS_CLAIMS = ("_id",)
REFRESH_CLAIMS = ("_id", "email", "username", "fullName", "jti")


def hash_password(plain_password: str, rounds: int | None = None) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    pw_bytes = plain_password.encode("utf-8")
    if len(pw_bytes) > BCRYPT_MAX_BYTES:
        raise HashingError(f"Password exceeds {BCRYPT_MAX_BYTES} bytes")
    cost = rounds if rounds is not None else default_settings.BCRYPT_ROUNDS
    try:
        hashed = bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=cost))
    except (ValueError, TypeError) as e:
        raise HashingError(f"Password hashing failed: {e}") from e
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


DUMMY_HASH = hash_password("dummy_password_for_timing_attack_prevention")


async def hash_password_async(
    plain_password: str,
    timeout: float | None = None,
) -> str:
    """Hash in a worker thread so the event loop is not blocked by bcrypt."""
    limit = timeout if timeout is not None else default_settings.HASH_TIMEOUT_SEC
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(hash_password, plain_password),
            timeout=limit,
        )
    except TimeoutError as e:
        raise HashingError(f"Password hashing timed out after {limit}s") from e


async def verify_password_async(
    plain_password: str,
    hashed: str,
    timeout: float | None = None,
) -> bool:
    """Verify in a worker thread; a timeout raises HashingError."""
    limit = timeout if timeout is not None else default_settings.HASH_TIMEOUT_SEC
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(verify_password, plain_password, hashed),
            timeout=limit,
        )
    except TimeoutError as e:
        raise HashingError(f"Password verification timed out after {limit}s") from e


def _secret(value: Any, name: str) -> str:
    secret = value.get_secret_value() if value is not None else ""
    if not secret or not secret.strip():
        raise SigningError(f"{name} must be configured to sign tokens")
    return secret


def _encode(claims: dict[str, Any], secret: str, lifetime: Any, algorithm: str) -> str:
    now = datetime.now(UTC)
    payload = {**claims, "iat": now, "exp": now + lifetime}
    try:
        return jwt.encode(payload, secret, algorithm=algorithm)
    except (jwt.PyJWTError, TypeError, ValueError) as e:
        raise SigningError(f"Token signing failed: {e}") from e


def create_access_token(user: User, settings: Settings | None = None) -> str:
    """Create a short lived access token carrying only the user id."""
    cfg = settings or default_settings
    secret = _secret(cfg.ACCESS_TOKEN_SECRET, "ACCESS_TOKEN_SECRET")
    return _encode(
        {"_id": str(user.id)},
        secret,
        cfg.ACCESS_TOKEN_EXPIRY,
        cfg.JWT_ALGORITHM,
    )


def create_refresh_token(user: User, settings: Settings | None = None) -> str:
    """Create a long lived refresh token carrying the user's identity fields."""
    cfg = settings or default_settings
    secret = _secret(cfg.REFRESH_TOKEN_SECRET, "REFRESH_TOKEN_SECRET")
    return _encode(
        {
            "_id": str(user.id),
            "email": user.email,
            "username": user.username,
            "fullName": user.full_name,
            # distinct per issue, even within the same second
            "jti": uuid.uuid4().hex,
        },
        secret,
        cfg.REFRESH_TOKEN_EXPIRY,
        cfg.JWT_ALGORITHM,
    )


def _decode(token: str, secret: str, algorithm: str, required: tuple[str, ...]) -> dict[str, Any]:
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require": ["exp", "iat", *required]},
        )
    except jwt.PyJWTError as e:
        raise TokenError(str(e)) from e


def decode_access_token(token: str, settings: Settings | None = None) -> dict[str, Any]:
    """
    Decode and validate an access token; return its claims (_id, iat, exp).
    Raises TokenError on invalid or expired token.
    """
    cfg = settings or default_settings
    secret = _secret(cfg.ACCESS_TOKEN_SECRET, "ACCESS_TOKEN_SECRET")
    return _decode(token, secret, cfg.JWT_ALGORITHM, ACCESS_CLAIMS)


def decode_refresh_token(token: str, settings: Settings | None = None) -> dict[str, Any]:
    """Decode and validate a refresh token. Raises TokenError on failure."""
    cfg = settings or default_settings
    secret = _secret(cfg.REFRESH_TOKEN_SECRET, "REFRESH_TOKEN_SECRET")
    return _decode(token, secret, cfg.JWT_ALGORITHM, REFRESH_CLAIMS)


def hash_token(token: str) -> str:
    """SHA-256 hex digest of a token, for storing refresh tokens at rest."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
