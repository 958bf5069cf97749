"""Authentication service interfaces."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, List, Optional, Sequence, Tuple

from booking_auth.core.domain.enums import PermissionAction
from .entities import (
    AccessTokenClaims,
    IssuedAccessToken,
    Permission,
    RefreshToken,
    RevokedToken,
    Role,
    User,
)


class PasswordServiceInterface(ABC):
    """Interface for password hashing and verification."""

    @abstractmethod
    async def hash_password(self, password: str) -> str:
        """
        Hash a password securely.

        Args:
            password: Plain text password

        Returns:
            Hashed password string
        """
        pass

    @abstractmethod
    async def verify_password(self, password: str, hashed_password: str) -> bool:
        """
        Verify password against hash.

        Args:
            password: Plain text password
            hashed_password: Stored password hash

        Returns:
            True if password matches, False otherwise
        """
        pass


class TokenServiceInterface(ABC):
    """Interface for access token signing and verification."""

    @abstractmethod
    def issue_access_token(self, user: User) -> IssuedAccessToken:
        """
        Create a signed access token with a fresh jti.

        Args:
            user: User entity

        Returns:
            Token string, its jti and its expiry read from the signed claims
        """
        pass

    @abstractmethod
    def verify_access_token(self, token: str) -> AccessTokenClaims:
        """
        Verify signature and expiry of an access token.

        Revocation is not checked here.

        Raises:
            TokenMissingException: If token is empty
            TokenExpiredException: If token has expired
            TokenInvalidException: If token is invalid or malformed
        """
        pass

    @abstractmethod
    def decode_access_token(self, token: Optional[str]) -> Optional[AccessTokenClaims]:
        """Verify the signature only, ignoring expiry; None if unusable."""
        pass

    @abstractmethod
    def generate_refresh_secret(self) -> str:
        """Generate an opaque, cryptographically random refresh secret."""
        pass


class UserRepositoryInterface(ABC):
    """Interface for user data access operations."""

    @abstractmethod
    async def get_user_by_id(self, user_id: str, include_deleted: bool = False) -> Optional[User]:
        """
        Get user by ID.

        Args:
            user_id: User identifier
            include_deleted: Also return soft-deleted users

        Returns:
            User entity if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_user_by_username(self, username: str, include_deleted: bool = False) -> Optional[User]:
        pass

    @abstractmethod
    async def get_user_by_email(self, email: str, include_deleted: bool = False) -> Optional[User]:
        pass

    @abstractmethod
    async def find_active_user_by_email(self, email: str) -> Optional[User]:
        """
        Get a user that may log in: active and not deleted.

        Args:
            email: Email address

        Returns:
            User entity if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_users(
        self,
        limit: int = 50,
        offset: int = 0,
        search: Optional[str] = None,
        include_deleted: bool = False,
    ) -> Tuple[List[User], int]:
        """
        List users ordered by creation time.

        Returns:
            Page of users and the total count
        """
        pass

    @abstractmethod
    async def create_user(self, user: User) -> User:
        """
        Create new user.

        Args:
            user: User entity to create

        Returns:
            Created user entity with ID

        Raises:
            EmailDuplicatedException: If email is taken, deleted users included
            UsernameDuplicatedException: If username is taken
        """
        pass

    @abstractmethod
    async def update_user_fields(self, user_id: str, **fields: Any) -> Optional[User]:
        """
        Update selected columns of a user.

        Args:
            user_id: User identifier
            **fields: Column values to write

        Returns:
            Updated user entity, None if not found
        """
        pass

    @abstractmethod
    async def increment_failed_login_attempts(
        self, user_id: str, max_attempts: int, lock_until: datetime
    ) -> int:
        """
        Atomically count a failed login and lock when the threshold is hit.

        The change is committed immediately so it survives a failing request.

        Args:
            user_id: User identifier
            max_attempts: Threshold at which the account locks
            lock_until: Lock expiry to set when the threshold is reached

        Returns:
            The new failed attempt count
        """
        pass


class RefreshTokenRepositoryInterface(ABC):
    """Interface for refresh token data access operations."""

    @abstractmethod
    async def save_refresh_token(self, token: RefreshToken) -> RefreshToken:
        """
        Save refresh token.

        Args:
            token: Refresh token entity

        Returns:
            Saved refresh token with ID
        """
        pass

    @abstractmethod
    async def get_refresh_token(self, token: str) -> Optional[RefreshToken]:
        """
        Get refresh token by token string.

        Args:
            token: Refresh token string

        Returns:
            Refresh token entity if found, None otherwise
        """
        pass

    @abstractmethod
    async def rotate_refresh_token(self, token: str, now: datetime) -> RefreshToken:
        """
        Consume a refresh token: mark it revoked in one conditional update.

        Args:
            token: Presented refresh secret
            now: Current time

        Returns:
            The consumed record

        Raises:
            RefreshTokenInvalidException: If no record matches
            RefreshTokenRevokedException: If already revoked or used
            RefreshTokenExpiredException: If past expiry
        """
        pass

    @abstractmethod
    async def revoke_refresh_token(self, token: str, now: datetime) -> bool:
        """
        Revoke refresh token.

        Args:
            token: Refresh token string
            now: Revocation time

        Returns:
            True if token was revoked, False if not found or already revoked
        """
        pass

    @abstractmethod
    async def revoke_user_tokens(self, user_id: str, now: datetime) -> int:
        """
        Revoke all refresh tokens for user.

        Args:
            user_id: User identifier
            now: Revocation time

        Returns:
            Number of tokens revoked
        """
        pass

    @abstractmethod
    async def get_tokens_created_since(self, user_id: str, since: datetime) -> List[RefreshToken]:
        """Return the user's refresh tokens created at or after ``since``, revoked or not."""
        pass

    @abstractmethod
    async def cleanup_expired_tokens(self, now: datetime) -> int:
        """
        Remove expired refresh tokens.

        Returns:
            Number of tokens removed
        """
        pass


class RevokedTokenRepositoryInterface(ABC):
    """Interface for the access token revocation list."""

    @abstractmethod
    async def revoke(self, entry: RevokedToken) -> None:
        """Insert a blacklist entry, ignoring a jti already present."""
        pass

    @abstractmethod
    async def is_revoked(self, jti: str) -> bool:
        pass

    @abstractmethod
    async def prune(self, now: datetime) -> int:
        """
        Delete entries whose original token expiry has passed.

        Returns:
            Number of entries removed
        """
        pass


class RoleRepositoryInterface(ABC):
    """Interface for roles and user-role membership."""

    @abstractmethod
    async def get_role_by_id(self, role_id: str) -> Optional[Role]:
        pass

    @abstractmethod
    async def get_role_by_name(self, name: str) -> Optional[Role]:
        pass

    @abstractmethod
    async def list_roles(
        self, limit: int = 50, offset: int = 0, search: Optional[str] = None
    ) -> Tuple[List[Role], int]:
        """
        List roles ordered by name.

        Returns:
            Page of roles and the total count
        """
        pass

    @abstractmethod
    async def create_role(self, role: Role) -> Role:
        pass

    @abstractmethod
    async def update_role(self, role: Role) -> Role:
        pass

    @abstractmethod
    async def delete_role(self, role_id: str) -> bool:
        pass

    @abstractmethod
    async def grant_role_to_user(self, user_id: str, role_id: str) -> None:
        pass

    @abstractmethod
    async def revoke_role_from_user(self, user_id: str, role_id: str) -> bool:
        pass

    @abstractmethod
    async def user_has_role(self, user_id: str, role_id: str) -> bool:
        pass

    @abstractmethod
    async def get_roles_for_user(self, user_id: str) -> List[Role]:
        """
        Read the user's current role memberships.

        Args:
            user_id: User identifier

        Returns:
            Roles the user holds, active or not
        """
        pass

    @abstractmethod
    async def get_user_ids_for_role(self, role_id: str) -> List[str]:
        pass


class PermissionRepositoryInterface(ABC):
    """Interface for permissions and role-permission grants."""

    @abstractmethod
    async def get_permission_by_id(self, permission_id: str) -> Optional[Permission]:
        pass

    @abstractmethod
    async def get_permission_by_name(self, name: str) -> Optional[Permission]:
        pass

    @abstractmethod
    async def get_permission_by_resource_action(
        self, resource: str, action: PermissionAction
    ) -> Optional[Permission]:
        pass

    @abstractmethod
    async def list_permissions(
        self, limit: int = 50, offset: int = 0, search: Optional[str] = None
    ) -> Tuple[List[Permission], int]:
        pass

    @abstractmethod
    async def create_permission(self, permission: Permission) -> Permission:
        pass

    @abstractmethod
    async def update_permission(self, permission: Permission) -> Permission:
        pass

    @abstractmethod
    async def delete_permission(self, permission_id: str) -> bool:
        pass

    @abstractmethod
    async def grant_permission_to_role(self, role_id: str, permission_id: str) -> None:
        pass

    @abstractmethod
    async def revoke_permission_from_role(self, role_id: str, permission_id: str) -> bool:
        pass

    @abstractmethod
    async def role_has_permission(self, role_id: str, permission_id: str) -> bool:
        pass

    @abstractmethod
    async def get_permissions_for_roles(self, role_ids: Sequence[str]) -> List[Permission]:
        """
        Read the union of permissions granted to the given roles.

        Args:
            role_ids: Role identifiers

        Returns:
            Distinct permissions granted to any of the roles
        """
        pass
