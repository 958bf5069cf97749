"""Role management service."""

import logging
from typing import List, Optional, Tuple

from booking_auth.core.auth.entities import Role
from booking_auth.core.auth.interfaces import RoleRepositoryInterface, UserRepositoryInterface
from booking_auth.core.exceptions import ConflictException, NotFoundException

logger = logging.getLogger(__name__)


class RoleService:
    """
    CRUD over roles and user-role membership.

    Membership changes take effect on the caller's next request, since
    authorization re-reads roles on every check.
    """

    def __init__(
        self,
        role_repository: RoleRepositoryInterface,
        user_repository: UserRepositoryInterface,
    ):
        """
        Initialize role service.

        Args:
            role_repository: Role persistence
            user_repository: Used to check that assigned users exist
        """
        self._role_repository = role_repository
        self._user_repository = user_repository

    async def list_roles(
        self, limit: int = 50, offset: int = 0, search: Optional[str] = None
    ) -> Tuple[List[Role], int]:
        return await self._role_repository.list_roles(limit=limit, offset=offset, search=search)

    async def get_role(self, role_id: str) -> Role:
        """
        Get role by ID.

        Raises:
            NotFoundException: If role does not exist
        """
        role = await self._role_repository.get_role_by_id(role_id)
        if role is None:
            raise NotFoundException("Role", role_id)
        return role

    async def create_role(
        self, name: str, description: Optional[str] = None, is_active: bool = True
    ) -> Role:
        """
        Create a new role.

        Raises:
            ConflictException: If a role with this name exists
        """
        if await self._role_repository.get_role_by_name(name) is not None:
            raise ConflictException("Role already exists", f"Role name: {name}")

        role = await self._role_repository.create_role(
            Role(id="", name=name, description=description, is_active=is_active)
        )
        logger.info(f"Created role {role.name}")
        return role

    async def update_role(
        self,
        role_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Role:
        """
        Update the given fields of a role.

        Raises:
            NotFoundException: If role does not exist
            ConflictException: If renaming onto an existing name
        """
        role = await self.get_role(role_id)

        if name is not None and name != role.name:
            if await self._role_repository.get_role_by_name(name) is not None:
                raise ConflictException("Role already exists", f"Role name: {name}")

        updated = Role(
            id=role.id,
            name=name if name is not None else role.name,
            description=description if description is not None else role.description,
            is_active=is_active if is_active is not None else role.is_active,
            created_at=role.created_at,
        )
        return await self._role_repository.update_role(updated)

    async def delete_role(self, role_id: str) -> None:
        role = await self.get_role(role_id)
        await self._role_repository.delete_role(role_id)
        logger.info(f"Deleted role {role.name}")

    async def assign_role_to_user(self, user_id: str, role_id: str) -> None:
        """
        Give a user a role.

        Raises:
            NotFoundException: If user or role does not exist
            ConflictException: If the user already holds the role
        """
        await self._require_user(user_id)
        role = await self.get_role(role_id)

        if await self._role_repository.user_has_role(user_id, role_id):
            raise ConflictException("User already has this role", f"Role: {role.name}")

        await self._role_repository.grant_role_to_user(user_id, role_id)
        logger.info(f"Assigned role {role.name} to user {user_id}")

    async def remove_role_from_user(self, user_id: str, role_id: str) -> None:
        """
        Take a role away from a user.

        Raises:
            NotFoundException: If user or role does not exist
            ConflictException: If the user does not hold the role
        """
        await self._require_user(user_id)
        role = await self.get_role(role_id)

        if not await self._role_repository.revoke_role_from_user(user_id, role_id):
            raise ConflictException("User does not have this role", f"Role: {role.name}")

        logger.info(f"Removed role {role.name} from user {user_id}")

    async def get_user_roles(self, user_id: str) -> List[Role]:
        await self._require_user(user_id)
        return await self._role_repository.get_roles_for_user(user_id)

    async def get_role_user_ids(self, role_id: str) -> List[str]:
        await self.get_role(role_id)
        return await self._role_repository.get_user_ids_for_role(role_id)

    async def _require_user(self, user_id: str) -> None:
        if await self._user_repository.get_user_by_id(user_id) is None:
            raise NotFoundException("User", user_id)
