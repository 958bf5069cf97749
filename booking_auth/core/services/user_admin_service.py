"""User administration service."""

import logging
from typing import List, Optional, Tuple

from booking_auth.core.auth.entities import User, UserProfile
from booking_auth.core.auth.interfaces import (
    RefreshTokenRepositoryInterface,
    RoleRepositoryInterface,
    UserRepositoryInterface,
)
from booking_auth.core.auth.services import AuthenticationService
from booking_auth.core.domain.enums import RevocationReason, UserStatus
from booking_auth.core.exceptions import ConflictException, NotFoundException
from booking_auth.utils.time import Clock, utcnow

logger = logging.getLogger(__name__)


class UserAdminService:
    """
    Administrative user lifecycle.

    Deleted users are tombstoned, never removed, so their email stays
    reserved and they can be restored.
    """

    def __init__(
        self,
        user_repository: UserRepositoryInterface,
        refresh_token_repository: RefreshTokenRepositoryInterface,
        role_repository: RoleRepositoryInterface,
        auth_service: AuthenticationService,
        clock: Clock = utcnow,
    ):
        self._user_repository = user_repository
        self._refresh_token_repository = refresh_token_repository
        self._role_repository = role_repository
        self._auth_service = auth_service
        self._clock = clock

    async def list_users(
        self,
        limit: int = 50,
        offset: int = 0,
        search: Optional[str] = None,
        include_deleted: bool = False,
    ) -> Tuple[List[UserProfile], int]:
        users, total = await self._user_repository.list_users(
            limit=limit, offset=offset, search=search, include_deleted=include_deleted
        )
        profiles = [await self._profile(user) for user in users]
        return profiles, total

    async def get_user(self, user_id: str, include_deleted: bool = False) -> UserProfile:
        """
        Get a user with role names.

        Raises:
            NotFoundException: If user does not exist
        """
        user = await self._require_user(user_id, include_deleted=include_deleted)
        return await self._profile(user)

    async def delete_user(self, user_id: str) -> None:
        """
        Soft delete a user and end their refresh sessions.

        Raises:
            NotFoundException: If user does not exist or is already deleted
        """
        await self._require_user(user_id)
        now = self._clock()

        await self._user_repository.update_user_fields(
            user_id, status=UserStatus.DELETED, deleted_at=now
        )
        revoked = await self._refresh_token_repository.revoke_user_tokens(user_id, now)
        logger.info(f"Soft deleted user {user_id}, revoked {revoked} refresh token(s)")

    async def restore_user(self, user_id: str) -> UserProfile:
        """
        Undo a soft delete.

        Raises:
            NotFoundException: If user does not exist
            ConflictException: If user is not deleted
        """
        user = await self._require_user(user_id, include_deleted=True)
        if not user.is_deleted:
            raise ConflictException("User is not deleted", f"User id: {user_id}")

        restored = await self._user_repository.update_user_fields(
            user_id, status=UserStatus.ACTIVE, deleted_at=None
        )
        logger.info(f"Restored user {user_id}")
        return await self._profile(restored)

    async def deactivate_user(self, user_id: str) -> UserProfile:
        """
        Block a user from logging in and refreshing.

        Access tokens already issued stay valid until they expire; use
        ``revoke_sessions`` to cut them off as well.
        """
        await self._require_user(user_id)
        now = self._clock()

        updated = await self._user_repository.update_user_fields(user_id, is_active=False)
        revoked = await self._refresh_token_repository.revoke_user_tokens(user_id, now)
        logger.info(f"Deactivated user {user_id}, revoked {revoked} refresh token(s)")
        return await self._profile(updated)

    async def reactivate_user(self, user_id: str) -> UserProfile:
        await self._require_user(user_id)
        updated = await self._user_repository.update_user_fields(user_id, is_active=True)
        logger.info(f"Reactivated user {user_id}")
        return await self._profile(updated)

    async def revoke_sessions(
        self, user_id: str, reason: RevocationReason = RevocationReason.ADMIN_REVOKE
    ) -> int:
        """
        Revoke every session of a user, live access tokens included.

        Returns:
            Number of refresh tokens revoked
        """
        await self._require_user(user_id, include_deleted=True)
        return await self._auth_service.revoke_user_sessions(user_id, reason)

    async def _require_user(self, user_id: str, include_deleted: bool = False) -> User:
        user = await self._user_repository.get_user_by_id(user_id, include_deleted=include_deleted)
        if user is None:
            raise NotFoundException("User", user_id)
        return user

    async def _profile(self, user: User) -> UserProfile:
        roles = await self._role_repository.get_roles_for_user(user.id)
        return user.to_profile(tuple(role.name for role in roles))
