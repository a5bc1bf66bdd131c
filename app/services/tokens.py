"""Token issuance with server-side refresh token tracking (rotation and revocation)."""

from __future__ import annotations

import hmac
import logging
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from app.core.exceptions import TokenError, UserNotFound
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    hash_token,
)
from app.models import User
from app.schemas.auth import LoginRequest, TokenPair
from app.services.users import authenticate, commit_changes, get_user

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


def issue_tokens(session: Session, user: User, settings: Settings | None = None) -> TokenPair:
    """Sign an access/refresh pair and store the refresh token's hash on the user."""
    access_token = create_access_token(user, settings)
    refresh_token = create_refresh_token(user, settings)
    user.refresh_token = hash_token(refresh_token)
    commit_changes(session)
    return TokenPair(access_token=access_token, refresh_token=refresh_token)


def login(session: Session, body: LoginRequest, settings: Settings | None = None) -> TokenPair:
    """Authenticate by username or email and issue a fresh token pair."""
    user = authenticate(session, body.login, body.password)
    tokens = issue_tokens(session, user, settings)
    logger.info("User id=%s logged in", user.id)
    return tokens


def refresh_tokens(
    session: Session,
    refresh_token: str,
    settings: Settings | None = None,
) -> TokenPair:
    """
    Exchange a refresh token for a new pair.

    The token must verify and match the hash stored on its user. A token that
    verifies but does not match (already rotated or revoked) clears the stored
    hash, logging the user out everywhere.
    """
    claims = decode_refresh_token(refresh_token, settings)
    try:
        user = get_user(session, claims["_id"])
    except UserNotFound:
        raise TokenError("User not found")

    presented = hash_token(refresh_token)
    if user.refresh_token is None or not hmac.compare_digest(user.refresh_token, presented):
        if user.refresh_token is not None:
            user.refresh_token = None
            commit_changes(session)
        logger.warning("Rejected stale refresh token for user id=%s", user.id)
        raise TokenError("Refresh token has been revoked")

    tokens = issue_tokens(session, user, settings)
    logger.info("Rotated refresh token for user id=%s", user.id)
    return tokens


def revoke_refresh_token(session: Session, user: User) -> None:
    """Forget the stored refresh token (logout)."""
    user.refresh_token = None
    commit_changes(session)
    logger.info("Revoked refresh token for user id=%s", user.id)
