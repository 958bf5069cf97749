"""Authentication domain entities."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple

from booking_auth.core.domain.enums import PermissionAction, RevocationReason, UserStatus
from booking_auth.utils.time import from_timestamp


@dataclass(frozen=True)
class User:
    """
    User entity for authentication.

    Attributes:
        id: Opaque unique user identifier
        username: Unique username
        email: User email address
        hashed_password: Securely hashed password
        first_name: Optional given name
        last_name: Optional family name
        is_active: Whether user account is active
        status: Lifecycle status, deleted users are tombstoned
        failed_login_attempts: Consecutive failed logins
        locked_until: End of the current lockout window
        last_login: Last successful login
        password_changed_at: Last credential change
        deleted_at: Soft deletion timestamp
        created_at: Account creation timestamp
        updated_at: Last update timestamp
    """

    id: str
    username: str
    email: str
    hashed_password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_active: bool = True
    status: UserStatus = UserStatus.ACTIVE
    failed_login_attempts: int = 0
    locked_until: Optional[datetime] = None
    last_login: Optional[datetime] = None
    password_changed_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        """Validate user data after initialization."""
        if not self.username:
            raise ValueError("Username cannot be empty")
        if not self.email:
            raise ValueError("Email cannot be empty")
        if not self.hashed_password:
            raise ValueError("Hashed password cannot be empty")
        if "@" not in self.email:
            raise ValueError("Invalid email format")
        if self.failed_login_attempts < 0:
            raise ValueError("Failed login attempts cannot be negative")

    @property
    def is_deleted(self) -> bool:
        return self.status == UserStatus.DELETED

    def is_locked(self, now: datetime) -> bool:
        """Check if the lockout window is still open at ``now``."""
        return self.locked_until is not None and self.locked_until > now

    def remaining_lock_minutes(self, now: datetime) -> int:
        """Whole minutes left in the lockout window, rounded up."""
        if not self.is_locked(now):
            return 0
        return math.ceil((self.locked_until - now).total_seconds() / 60)

    def to_profile(self, roles: Tuple[str, ...] = ()) -> "UserProfile":
        """Strip credential and lockout fields for client responses."""
        return UserProfile(
            id=self.id,
            username=self.username,
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            is_active=self.is_active,
            roles=roles,
            last_login=self.last_login,
            created_at=self.created_at,
        )


@dataclass(frozen=True)
class UserProfile:
    """Sanitized view of a user, safe to return to clients."""

    id: str
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_active: bool = True
    roles: Tuple[str, ...] = ()
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class UserRegistration:
    """Input for registering a new account."""

    username: str
    email: str
    password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role_ids: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ClientInfo:
    """Request metadata recorded on refresh tokens for auditing."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass(frozen=True)
class Role:
    """
    Role entity, a named bundle of permissions.

    Attributes:
        id: Unique role identifier
        name: Unique role name
        description: Human readable description
        is_active: Inactive roles grant nothing
    """

    id: str
    name: str
    description: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Role name cannot be empty")


@dataclass(frozen=True)
class Permission:
    """
    Permission entity granting one action on one resource.

    ``manage`` is a wildcard covering every action on its resource.
    """

    id: str
    name: str
    resource: str
    action: PermissionAction
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Permission name cannot be empty")
        if not self.resource:
            raise ValueError("Permission resource cannot be empty")

    def grants(self, resource: str, action: PermissionAction | str) -> bool:
        """Check whether this permission allows ``action`` on ``resource``."""
        if self.resource != resource:
            return False
        return self.action == PermissionAction.MANAGE or self.action == action


@dataclass(frozen=True)
class RefreshToken:
    """
    Refresh token entity for token management.

    Attributes:
        id: Unique token identifier
        user_id: User ID this token belongs to
        token: The opaque refresh secret
        access_token_jti: jti of the access token issued alongside
        expires_at: Token expiration timestamp
        is_revoked: Whether token has been used or revoked
        revoked_at: When the token was revoked
        ip_address: Client address at issuance
        user_agent: Client user agent at issuance
        created_at: Token creation timestamp
    """

    id: Optional[str]
    user_id: str
    token: str
    access_token_jti: str
    expires_at: datetime
    is_revoked: bool = False
    revoked_at: Optional[datetime] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        """Validate refresh token data."""
        if not self.token:
            raise ValueError("Token cannot be empty")
        if not self.user_id:
            raise ValueError("User ID cannot be empty")

    def is_expired(self, now: datetime) -> bool:
        """Check if refresh token is expired."""
        return now >= self.expires_at


@dataclass(frozen=True)
class RevokedToken:
    """Blacklist entry for an access token jti."""

    jti: str
    user_id: str
    expires_at: datetime
    reason: RevocationReason
    id: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class AccessTokenClaims:
    """
    Verified JWT access token claims.

    Attributes:
        sub: Subject (user ID)
        jti: Unique token identifier
        email: Email at issuance
        username: Username at issuance
        iat: Issued at, POSIX seconds with sub-second precision
        exp: Expiration, POSIX seconds
        token_type: Type of token
    """

    sub: str
    jti: str
    email: str
    username: str
    iat: float
    exp: int
    token_type: str = "access"

    def __post_init__(self) -> None:
        """Validate token payload data."""
        if not self.sub:
            raise ValueError("Subject cannot be empty")
        if not self.jti:
            raise ValueError("Token id cannot be empty")

    @property
    def issued_at(self) -> datetime:
        return from_timestamp(self.iat)

    @property
    def expires_at(self) -> datetime:
        return from_timestamp(self.exp)


@dataclass(frozen=True)
class IssuedAccessToken:
    """A freshly signed access token."""

    token: str
    jti: str
    expires_at: datetime


@dataclass(frozen=True)
class TokenPair:
    """
    Access and refresh token pair.

    Attributes:
        access_token: JWT access token
        refresh_token: Opaque refresh secret
        expires_at: Access token expiration
        token_type: Token type (typically "bearer")
    """

    access_token: str
    refresh_token: str
    expires_at: datetime
    token_type: str = "bearer"

    def __post_init__(self) -> None:
        """Validate token pair data."""
        if not self.access_token:
            raise ValueError("Access token cannot be empty")
        if not self.refresh_token:
            raise ValueError("Refresh token cannot be empty")


@dataclass(frozen=True)
class AuthResult:
    """Outcome of register and login: profile plus a token pair."""

    user: UserProfile
    access_token: str
    refresh_token: str
    expires_at: datetime


@dataclass(frozen=True)
class AccessDecision:
    """Result of an authorization check."""

    allowed: bool
    reason: str
    matched_permission: Optional[Permission] = None
    roles: Tuple[str, ...] = field(default_factory=tuple)
