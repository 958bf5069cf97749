"""Permission management service."""

import logging
from typing import List, Optional, Tuple

from booking_auth.core.auth.entities import Permission
from booking_auth.core.auth.interfaces import (
    PermissionRepositoryInterface,
    RoleRepositoryInterface,
)
from booking_auth.core.domain.enums import PermissionAction
from booking_auth.core.exceptions import ConflictException, NotFoundException

logger = logging.getLogger(__name__)


class PermissionService:
    """CRUD over permissions and role-permission grants."""

    def __init__(
        self,
        permission_repository: PermissionRepositoryInterface,
        role_repository: RoleRepositoryInterface,
    ):
        self._permission_repository = permission_repository
        self._role_repository = role_repository

    async def list_permissions(
        self, limit: int = 50, offset: int = 0, search: Optional[str] = None
    ) -> Tuple[List[Permission], int]:
        return await self._permission_repository.list_permissions(
            limit=limit, offset=offset, search=search
        )

    async def get_permission(self, permission_id: str) -> Permission:
        """
        Get permission by ID.

        Raises:
            NotFoundException: If permission does not exist
        """
        permission = await self._permission_repository.get_permission_by_id(permission_id)
        if permission is None:
            raise NotFoundException("Permission", permission_id)
        return permission

    async def create_permission(
        self,
        resource: str,
        action: PermissionAction,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Permission:
        """
        Create a permission for one action on one resource.

        Args:
            resource: Resource name
            action: Granted action
            name: Permission name, ``resource.action`` when omitted
            description: Human readable description

        Raises:
            ConflictException: If the name or the (resource, action) pair exists
        """
        action = PermissionAction(action)
        name = name or f"{resource}.{action.value}"

        if await self._permission_repository.get_permission_by_name(name) is not None:
            raise ConflictException("Permission already exists", f"Permission name: {name}")
        if await self._permission_repository.get_permission_by_resource_action(resource, action):
            raise ConflictException(
                "Permission already exists", f"Resource/action: {resource}.{action.value}"
            )

        permission = await self._permission_repository.create_permission(
            Permission(id="", name=name, resource=resource, action=action, description=description)
        )
        logger.info(f"Created permission {permission.name}")
        return permission

    async def update_permission(
        self,
        permission_id: str,
        name: Optional[str] = None,
        resource: Optional[str] = None,
        action: Optional[PermissionAction] = None,
        description: Optional[str] = None,
    ) -> Permission:
        """
        Update the given fields of a permission.

        Raises:
            NotFoundException: If permission does not exist
            ConflictException: If the new name or pair belongs to another permission
        """
        permission = await self.get_permission(permission_id)

        new_name = name if name is not None else permission.name
        new_resource = resource if resource is not None else permission.resource
        new_action = PermissionAction(action) if action is not None else permission.action

        if new_name != permission.name:
            if await self._permission_repository.get_permission_by_name(new_name) is not None:
                raise ConflictException("Permission already exists", f"Permission name: {new_name}")

        if (new_resource, new_action) != (permission.resource, permission.action):
            existing = await self._permission_repository.get_permission_by_resource_action(
                new_resource, new_action
            )
            if existing is not None and existing.id != permission.id:
                raise ConflictException(
                    "Permission already exists",
                    f"Resource/action: {new_resource}.{new_action.value}",
                )

        return await self._permission_repository.update_permission(
            Permission(
                id=permission.id,
                name=new_name,
                resource=new_resource,
                action=new_action,
                description=description if description is not None else permission.description,
                created_at=permission.created_at,
            )
        )

    async def delete_permission(self, permission_id: str) -> None:
        permission = await self.get_permission(permission_id)
        await self._permission_repository.delete_permission(permission_id)
        logger.info(f"Deleted permission {permission.name}")

    async def assign_permission_to_role(self, role_id: str, permission_id: str) -> None:
        """
        Grant a permission to a role.

        Raises:
            NotFoundException: If role or permission does not exist
            ConflictException: If already granted
        """
        role = await self._require_role(role_id)
        permission = await self.get_permission(permission_id)

        if await self._permission_repository.role_has_permission(role_id, permission_id):
            raise ConflictException(
                "Role already has this permission", f"{role.name}: {permission.name}"
            )

        await self._permission_repository.grant_permission_to_role(role_id, permission_id)
        logger.info(f"Granted {permission.name} to role {role.name}")

    async def remove_permission_from_role(self, role_id: str, permission_id: str) -> None:
        """
        Withdraw a permission from a role.

        Raises:
            NotFoundException: If role or permission does not exist
            ConflictException: If the role does not have the permission
        """
        role = await self._require_role(role_id)
        permission = await self.get_permission(permission_id)

        if not await self._permission_repository.revoke_permission_from_role(role_id, permission_id):
            raise ConflictException(
                "Role does not have this permission", f"{role.name}: {permission.name}"
            )

        logger.info(f"Withdrew {permission.name} from role {role.name}")

    async def get_role_permissions(self, role_id: str) -> List[Permission]:
        await self._require_role(role_id)
        return await self._permission_repository.get_permissions_for_roles([role_id])

    async def _require_role(self, role_id: str):
        role = await self._role_repository.get_role_by_id(role_id)
        if role is None:
            raise NotFoundException("Role", role_id)
        return role
