"""Role-based access control."""

import logging
from typing import Iterable, List

from booking_auth.core.domain.enums import PermissionAction
from booking_auth.core.exceptions import ForbiddenException
from .entities import AccessDecision, Permission, Role
from .interfaces import PermissionRepositoryInterface, RoleRepositoryInterface

logger = logging.getLogger(__name__)


class RBACAuthorizer:
    """
    Decide whether a user may perform an action on a resource.

    Roles and permissions are read fresh on every check, so role changes
    take effect on the next request. Inactive roles grant nothing.
    """

    def __init__(
        self,
        role_repository: RoleRepositoryInterface,
        permission_repository: PermissionRepositoryInterface,
    ) -> None:
        self._role_repository = role_repository
        self._permission_repository = permission_repository

    async def check_permission(
        self, user_id: str, resource: str, action: PermissionAction | str
    ) -> AccessDecision:
        """
        Evaluate a permission without raising.

        Args:
            user_id: User identifier
            resource: Resource name, e.g. ``reservations``
            action: Requested action; a ``manage`` grant covers all actions

        Returns:
            Decision with the matching permission when allowed
        """
        roles = await self._active_roles(user_id)
        if not roles:
            return AccessDecision(allowed=False, reason="User has no roles assigned")

        role_names = tuple(role.name for role in roles)
        permissions = await self._permission_repository.get_permissions_for_roles(
            [role.id for role in roles]
        )

        for permission in permissions:
            if permission.grants(resource, action):
                return AccessDecision(
                    allowed=True,
                    reason=f"Granted by {permission.name}",
                    matched_permission=permission,
                    roles=role_names,
                )

        return AccessDecision(
            allowed=False,
            reason=f"Requires permission: {resource}.{self._action_value(action)}",
            roles=role_names,
        )

    async def authorize(
        self, user_id: str, resource: str, action: PermissionAction | str
    ) -> AccessDecision:
        """
        Require a permission.

        Raises:
            ForbiddenException: If the user has no roles or no matching grant
        """
        decision = await self.check_permission(user_id, resource, action)
        if not decision.allowed:
            logger.info(f"Denied {resource}.{self._action_value(action)} to user {user_id}")
            raise ForbiddenException(f"Access denied. {decision.reason}")
        return decision

    async def check_any_role(self, user_id: str, role_names: Iterable[str]) -> AccessDecision:
        wanted = set(role_names)
        roles = await self._active_roles(user_id)
        held = tuple(role.name for role in roles)

        if not roles:
            return AccessDecision(allowed=False, reason="User has no roles assigned")
        if wanted.intersection(held):
            return AccessDecision(allowed=True, reason="Role matched", roles=held)
        return AccessDecision(
            allowed=False,
            reason=f"Requires role: {' or '.join(sorted(wanted))}",
            roles=held,
        )

    async def authorize_any_role(self, user_id: str, role_names: Iterable[str]) -> AccessDecision:
        """
        Require at least one of the given roles.

        Raises:
            ForbiddenException: If the user holds none of them
        """
        decision = await self.check_any_role(user_id, role_names)
        if not decision.allowed:
            logger.info(f"Denied role-gated access to user {user_id}")
            raise ForbiddenException(f"Access denied. {decision.reason}")
        return decision

    async def get_user_permissions(self, user_id: str) -> List[Permission]:
        """List the distinct permissions granted through the user's active roles."""
        roles = await self._active_roles(user_id)
        if not roles:
            return []
        return await self._permission_repository.get_permissions_for_roles(
            [role.id for role in roles]
        )

    async def _active_roles(self, user_id: str) -> List[Role]:
        roles = await self._role_repository.get_roles_for_user(user_id)
        return [role for role in roles if role.is_active]

    @staticmethod
    def _action_value(action: PermissionAction | str) -> str:
        return action.value if isinstance(action, PermissionAction) else str(action)
