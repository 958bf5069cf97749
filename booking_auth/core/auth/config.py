"""Authentication policy configuration."""

from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class AuthConfig:
    """
    Immutable auth policy passed into the auth services at startup.

    Attributes:
        jwt_secret_key: Secret used to sign access tokens
        jwt_algorithm: JWT signing algorithm
        access_token_ttl: Lifetime of an access token
        refresh_token_ttl: Lifetime of a refresh token
        max_login_attempts: Failed logins before the account locks
        lockout_duration: How long a locked account stays locked
        default_role_name: Role given to self-registered users
    """

    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    access_token_ttl: timedelta = timedelta(minutes=15)
    refresh_token_ttl: timedelta = timedelta(days=7)
    max_login_attempts: int = 5
    lockout_duration: timedelta = timedelta(minutes=15)
    default_role_name: str = "user"

    def __post_init__(self) -> None:
        """Validate policy values."""
        if not self.jwt_secret_key:
            raise ValueError("JWT secret key cannot be empty")
        if self.max_login_attempts < 1:
            raise ValueError("Max login attempts must be at least 1")
