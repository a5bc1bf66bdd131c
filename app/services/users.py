"""Account lifecycle: registration, lookup, profile and credential updates, verification."""

from __future__ import annotations

import hmac
import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings as default_settings
from app.core.exceptions import (
    DuplicateUserError,
    InvalidCredentials,
    InvalidOtp,
    OtpExpired,
    PersistenceError,
    UserNotFound,
    ValidationError,
)
from app.core.security import (
    BCRYPT_MAX_BYTES,
    DUMMY_HASH,
    PASSWORD_MIN_LEN,
    hash_password,
    verify_password,
)
from app.models import OrderId, ProductId, User
from app.schemas.user import UserCreate, UserUpdate, normalize_email, normalize_username

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

# Fields a profile update may not clear.
REQUIRED_PROFILE_FIELDS = ("username", "email", "full_name", "verification_method")


# How each unique column shows up in driver messages: SQLite names the
# column, Postgres names the index or constraint and repeats the key.
_UNIQUE_MARKERS = {
    "username": ("users.username", "(username)", "ix_users_username"),
    "email": ("users.email", "(email)", "users_email_key"),
}


def _duplicate_field(exc: IntegrityError) -> str | None:
    message = str(exc.orig).lower()
    for field, markers in _UNIQUE_MARKERS.items():
        if any(marker in message for marker in markers):
            return field
    return None


def commit_changes(session: Session, **unique_values: str | None) -> None:
    """
    Commit the session, rolling back on failure.

    Unique index violations become DuplicateUserError for the offending field
    (looked up in unique_values); other storage failures become PersistenceError.
    """
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        field = _duplicate_field(e)
        if field is not None:
            raise DuplicateUserError(field, unique_values.get(field) or "") from e
        raise PersistenceError(f"Could not save user: {e.orig}") from e
    except SQLAlchemyError as e:
        session.rollback()
        raise PersistenceError(f"Could not save user: {e}") from e


def _ensure_available(
    session: Session,
    username: str | None = None,
    email: str | None = None,
    exclude_id: UUID | None = None,
) -> None:
    """Raise DuplicateUserError when username or email belongs to another account."""
    for field, column, value in (
        ("username", User.username, username),
        ("email", User.email, email),
    ):
        if value is None:
            continue
        query = session.query(User.id).filter(column == value)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first() is not None:
            raise DuplicateUserError(field, value)


def _check_new_password(plain_password: str) -> None:
    if len(plain_password) < PASSWORD_MIN_LEN:
        raise ValidationError(
            f"Password must be at least {PASSWORD_MIN_LEN} characters", field="password"
        )
    if len(plain_password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValidationError(
            f"Password must be at most {BCRYPT_MAX_BYTES} bytes", field="password"
        )


def register_user(session: Session, data: UserCreate, verified: bool = False) -> User:
    """
    Create an account. The password is hashed before anything is written.
    Pass verified=True to create an already confirmed account in one commit.

    Raises DuplicateUserError when the normalized username or email is taken,
    HashingError when bcrypt fails.
    """
    _ensure_available(session, username=data.username, email=data.email)
    password_hash = hash_password(data.password)

    user = User(
        username=data.username,
        email=data.email,
        full_name=data.full_name,
        password_hash=password_hash,
        verification_method=data.verification_method,
        avatar=str(data.avatar) if data.avatar is not None else None,
        phone=data.phone,
        shipping_address=data.shipping_address,
        billing_address=data.billing_address,
        orders=[],
        wishlist=[],
        is_verified=verified,
    )
    session.add(user)
    commit_changes(session, username=data.username, email=data.email)
    session.refresh(user)
    logger.info("Registered user id=%s username=%s", user.id, user.username)
    return user


def get_user(session: Session, user_id: UUID | str) -> User:
    """Load a user by id or raise UserNotFound."""
    try:
        key = user_id if isinstance(user_id, UUID) else UUID(str(user_id))
    except ValueError:
        raise UserNotFound(str(user_id))
    user = session.get(User, key)
    if user is None:
        raise UserNotFound(str(user_id))
    return user


def get_by_username(session: Session, username: str) -> User | None:
    return session.query(User).filter(User.username == normalize_username(username)).first()


def get_by_email(session: Session, email: str) -> User | None:
    return session.query(User).filter(User.email == normalize_email(email)).first()


def update_profile(session: Session, user: User, data: UserUpdate) -> User:
    """Apply the fields set on `data`; changing username or email re-checks uniqueness."""
    changes: dict[str, Any] = data.model_dump(exclude_unset=True)
    for field in REQUIRED_PROFILE_FIELDS:
        if field in changes and changes[field] is None:
            raise ValidationError(f"{field} is required", field=field)
    if changes.get("avatar") is not None:
        changes["avatar"] = str(changes["avatar"])

    _ensure_available(
        session,
        username=changes.get("username"),
        email=changes.get("email"),
        exclude_id=user.id,
    )
    for field, value in changes.items():
        setattr(user, field, value)
    commit_changes(session, username=changes.get("username"), email=changes.get("email"))
    session.refresh(user)
    logger.info("Updated profile for user id=%s fields=%s", user.id, sorted(changes))
    return user


def set_password(session: Session, user: User, plain_password: str) -> User:
    """
    Replace the user's password. Hashes immediately and persists the hash;
    this is the only path that changes password_hash after registration.
    """
    _check_new_password(plain_password)
    user.password_hash = hash_password(plain_password)
    commit_changes(session)
    logger.info("Password set for user id=%s", user.id)
    return user


def change_password(
    session: Session,
    user: User,
    current_password: str,
    new_password: str,
) -> User:
    """Verify the current password, store the new one and revoke the refresh token."""
    if not verify_password(current_password, user.password_hash):
        logger.warning("Rejected password change for user id=%s", user.id)
        raise InvalidCredentials("Current password is incorrect")
    user.refresh_token = None
    return set_password(session, user, new_password)


def authenticate(session: Session, login: str, password: str) -> User:
    """
    Return the user whose username (or email, when `login` contains '@')
    matches and whose password verifies. Raises InvalidCredentials otherwise.
    """
    if "@" in login:
        user = get_by_email(session, login)
    else:
        user = get_by_username(session, login)

    if user is None:
        # Same bcrypt cost as a real check so response time does not reveal the account.
        verify_password(password, DUMMY_HASH)
        logger.warning("Failed login for unknown account")
        raise InvalidCredentials()
    if not verify_password(password, user.password_hash):
        logger.warning("Failed login for user id=%s", user.id)
        raise InvalidCredentials()
    return user


def delete_user(session: Session, user: User) -> None:
    """
    Hard delete. Order and wishlist references are not cascaded; the owning
    subsystems resolve dangling ids themselves.
    """
    user_id = user.id
    orders, wishlist = len(user.orders or []), len(user.wishlist or [])
    session.delete(user)
    commit_changes(session)
    logger.info(
        "Deleted user id=%s (orphaned orders=%s, wishlist=%s)", user_id, orders, wishlist
    )


def add_to_wishlist(session: Session, user: User, product_id: ProductId) -> User:
    """Append a product id unless it is already on the wishlist."""
    product_id = ProductId(str(product_id))
    if product_id not in user.wishlist:
        user.wishlist.append(product_id)
        commit_changes(session)
    return user


def remove_from_wishlist(session: Session, user: User, product_id: ProductId) -> User:
    product_id = ProductId(str(product_id))
    if product_id in user.wishlist:
        user.wishlist.remove(product_id)
        commit_changes(session)
    return user


def record_order(session: Session, user: User, order_id: OrderId) -> User:
    """Append an order id to the user's order history (kept in placement order)."""
    order_id = OrderId(str(order_id))
    if order_id not in user.orders:
        user.orders.append(order_id)
        commit_changes(session)
    return user


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def issue_otp(session: Session, user: User, settings: Settings | None = None) -> int:
    """Store a fresh one-time passcode and its expiry; return the code for delivery."""
    cfg = settings or default_settings
    low = 10 ** (cfg.OTP_DIGITS - 1)
    code = low + secrets.randbelow(9 * low)
    user.otp = code
    user.otp_expires = datetime.now(UTC) + timedelta(minutes=cfg.OTP_TTL_MINUTES)
    commit_changes(session)
    logger.info("Issued verification code for user id=%s", user.id)
    return code


def confirm_otp(
    session: Session,
    user: User,
    code: int | str,
    now: datetime | None = None,
) -> User:
    """
    Mark the user verified when `code` matches the pending, unexpired passcode.

    The passcode is single use: it is cleared on success and on expiry.
    Raises InvalidOtp (no code pending or mismatch) or OtpExpired.
    """
    if user.otp is None or user.otp_expires is None:
        raise InvalidOtp("No verification code pending")

    current = now or datetime.now(UTC)
    if _as_utc(user.otp_expires) <= current:
        user.otp = None
        user.otp_expires = None
        commit_changes(session)
        logger.warning("Expired verification code used for user id=%s", user.id)
        raise OtpExpired()

    presented = str(code).strip()
    # compare_digest only accepts ASCII str
    if not (presented.isascii() and presented.isdigit()):
        logger.warning("Malformed verification code for user id=%s", user.id)
        raise InvalidOtp()
    if not hmac.compare_digest(str(user.otp), presented):
        logger.warning("Wrong verification code for user id=%s", user.id)
        raise InvalidOtp()

    user.is_verified = True
    user.otp = None
    user.otp_expires = None
    commit_changes(session)
    logger.info("Verified user id=%s", user.id)
    return user
