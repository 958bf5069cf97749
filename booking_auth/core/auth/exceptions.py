"""Authentication exceptions."""

from booking_auth.core.domain.enums import ErrorCode
from booking_auth.core.exceptions import ConflictException, DomainException


class AuthenticationException(DomainException):
    """Base exception for authentication errors."""

    code = ErrorCode.UNAUTHORIZED


class UnauthorizedException(AuthenticationException):
    """Raised when a re-entered credential does not match."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class InvalidCredentialsException(AuthenticationException):
    """
    Raised when login credentials are invalid.

    The message never reveals whether the email exists.
    """

    code = ErrorCode.INVALID_CREDENTIALS

    def __init__(self, remaining_attempts: int | None = None) -> None:
        message = "Invalid credentials"
        if remaining_attempts is not None:
            message = f"Invalid credentials. {remaining_attempts} attempt(s) remaining"
        super().__init__(message)
        self.remaining_attempts = remaining_attempts


class AccountLockedException(AuthenticationException):
    """Raised when the account is inside its lockout window."""

    code = ErrorCode.ACCOUNT_LOCKED

    def __init__(self, remaining_minutes: int) -> None:
        super().__init__(
            f"Account locked. Try again in {remaining_minutes} minute(s)"
        )
        self.remaining_minutes = remaining_minutes


class UserInactiveException(AuthenticationException):
    """Raised when the user account is deactivated or deleted."""

    code = ErrorCode.USER_INACTIVE

    def __init__(self, user_id: str | None = None) -> None:
        super().__init__("User account is inactive", f"User id: {user_id}")
        self.user_id = user_id


class TokenMissingException(AuthenticationException):
    """Raised when no access token was presented."""

    code = ErrorCode.TOKEN_MISSING

    def __init__(self) -> None:
        super().__init__("Token not provided")


class TokenInvalidException(AuthenticationException):
    """Raised when token is invalid, malformed or stale."""

    code = ErrorCode.TOKEN_INVALID

    def __init__(self, reason: str = "Invalid token") -> None:
        super().__init__(reason)


class TokenExpiredException(AuthenticationException):
    """Raised when a correctly signed access token is past its expiry."""

    code = ErrorCode.TOKEN_EXPIRED

    def __init__(self) -> None:
        super().__init__("Token has expired")


class TokenBlacklistedException(AuthenticationException):
    """Raised when the token's jti is on the revocation list."""

    code = ErrorCode.TOKEN_BLACKLISTED

    def __init__(self) -> None:
        super().__init__("Token has been revoked")


class RefreshTokenInvalidException(AuthenticationException):
    """Raised when no refresh record matches the presented secret."""

    code = ErrorCode.REFRESH_TOKEN_INVALID

    def __init__(self) -> None:
        super().__init__("Invalid refresh token")


class RefreshTokenExpiredException(AuthenticationException):
    """Raised when the refresh record is past its expiry."""

    code = ErrorCode.REFRESH_TOKEN_EXPIRED

    def __init__(self) -> None:
        super().__init__("Refresh token has expired")


class RefreshTokenRevokedException(AuthenticationException):
    """Raised when the refresh record was already used or revoked."""

    code = ErrorCode.REFRESH_TOKEN_REVOKED

    def __init__(self) -> None:
        super().__init__("Refresh token has been revoked")


class EmailDuplicatedException(ConflictException):
    """Raised when registering an email that is already taken."""

    code = ErrorCode.EMAIL_DUPLICATED

    def __init__(self, email: str) -> None:
        super().__init__("Email is already registered", f"Email: {email}")
        self.email = email


class UsernameDuplicatedException(ConflictException):
    """Raised when registering a username that is already taken."""

    code = ErrorCode.USERNAME_DUPLICATED

    def __init__(self, username: str) -> None:
        super().__init__("Username is already taken", f"Username: {username}")
        self.username = username
