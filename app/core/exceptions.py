"""Error taxonomy for account, credential and token operations."""


class AccountError(Exception):
    """Base class; carries a human-readable message."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(AccountError):
    """Input rejected for user-facing correction (missing, malformed or taken)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class DuplicateUserError(ValidationError):
    """Username or email already belongs to another account."""

    def __init__(self, field: str, value: str) -> None:
        self.value = value
        super().__init__(f"{field} '{value}' is already taken", field=field)


class InvalidOtp(ValidationError):
    """One-time passcode missing or not matching."""

    def __init__(self, message: str = "Invalid verification code") -> None:
        super().__init__(message, field="otp")


class OtpExpired(ValidationError):
    """One-time passcode past its expiry."""

    def __init__(self, message: str = "Verification code has expired") -> None:
        super().__init__(message, field="otp")


class HashingError(AccountError):
    """Password hash primitive failed or timed out."""


class SigningError(AccountError):
    """Token could not be signed (missing or invalid secret)."""


class TokenError(AccountError):
    """Token failed verification or does not match the stored refresh token."""

    def __init__(self, message: str = "Invalid or expired token") -> None:
        super().__init__(message)


class InvalidCredentials(AccountError):
    """Login or current-password check failed."""

    def __init__(self, message: str = "Invalid username, email or password") -> None:
        super().__init__(message)


class UserNotFound(AccountError):
    """No account with the requested identifier."""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"User '{identifier}' not found")


class PersistenceError(AccountError):
    """Storage layer failure other than a uniqueness violation."""
