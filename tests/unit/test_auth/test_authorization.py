"""Tests for role-based access control."""

import pytest
from unittest.mock import AsyncMock

from booking_auth.core.auth.authorization import RBACAuthorizer
from booking_auth.core.auth.entities import Permission, Role
from booking_auth.core.domain.enums import PermissionAction
from booking_auth.core.exceptions import ForbiddenException

USER_ROLE = Role(id="role-user", name="user")
ADMIN_ROLE = Role(id="role-admin", name="admin")
RESERVATIONS_READ = Permission(
    id="p1", name="reservations.read", resource="reservations", action=PermissionAction.READ
)
USERS_MANAGE = Permission(id="p2", name="users.manage", resource="users", action=PermissionAction.MANAGE)


@pytest.fixture
def mock_role_repository():
    return AsyncMock()


@pytest.fixture
def mock_permission_repository():
    return AsyncMock()


@pytest.fixture
def authorizer(mock_role_repository, mock_permission_repository):
    return RBACAuthorizer(mock_role_repository, mock_permission_repository)


class TestCheckPermission:
    """Test cases for permission decisions."""

    @pytest.mark.asyncio
    async def test_exact_grant(self, authorizer, mock_role_repository, mock_permission_repository):
        mock_role_repository.get_roles_for_user.return_value = [USER_ROLE]
        mock_permission_repository.get_permissions_for_roles.return_value = [RESERVATIONS_READ]

        decision = await authorizer.check_permission("user-1", "reservations", PermissionAction.READ)

        assert decision.allowed is True
        assert decision.matched_permission == RESERVATIONS_READ
        assert decision.roles == ("user",)
        mock_permission_repository.get_permissions_for_roles.assert_awaited_once_with(["role-user"])

    @pytest.mark.asyncio
    async def test_manage_grants_any_action(
        self, authorizer, mock_role_repository, mock_permission_repository
    ):
        mock_role_repository.get_roles_for_user.return_value = [ADMIN_ROLE]
        mock_permission_repository.get_permissions_for_roles.return_value = [USERS_MANAGE]

        for action in (PermissionAction.READ, PermissionAction.DELETE, "update"):
            decision = await authorizer.check_permission("admin-1", "users", action)
            assert decision.allowed is True

    @pytest.mark.asyncio
    async def test_missing_grant(self, authorizer, mock_role_repository, mock_permission_repository):
        mock_role_repository.get_roles_for_user.return_value = [USER_ROLE]
        mock_permission_repository.get_permissions_for_roles.return_value = [RESERVATIONS_READ]

        decision = await authorizer.check_permission("user-1", "reservations", PermissionAction.DELETE)

        assert decision.allowed is False
        assert decision.reason == "Requires permission: reservations.delete"

    @pytest.mark.asyncio
    async def test_no_roles(self, authorizer, mock_role_repository, mock_permission_repository):
        mock_role_repository.get_roles_for_user.return_value = []

        decision = await authorizer.check_permission("user-1", "reservations", PermissionAction.READ)

        assert decision.allowed is False
        assert decision.reason == "User has no roles assigned"
        mock_permission_repository.get_permissions_for_roles.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_inactive_role_grants_nothing(
        self, authorizer, mock_role_repository, mock_permission_repository
    ):
        """Test that an inactive role is treated as absent."""
        mock_role_repository.get_roles_for_user.return_value = [
            Role(id="role-admin", name="admin", is_active=False)
        ]

        decision = await authorizer.check_permission("user-1", "users", PermissionAction.READ)

        assert decision.allowed is False
        assert decision.reason == "User has no roles assigned"


class TestAuthorize:
    """Test cases for raising checks."""

    @pytest.mark.asyncio
    async def test_authorize_denied_message(
        self, authorizer, mock_role_repository, mock_permission_repository
    ):
        mock_role_repository.get_roles_for_user.return_value = [USER_ROLE]
        mock_permission_repository.get_permissions_for_roles.return_value = []

        with pytest.raises(ForbiddenException) as exc_info:
            await authorizer.authorize("user-1", "roles", PermissionAction.CREATE)

        assert exc_info.value.message == "Access denied. Requires permission: roles.create"

    @pytest.mark.asyncio
    async def test_authorize_no_roles_message(self, authorizer, mock_role_repository):
        mock_role_repository.get_roles_for_user.return_value = []

        with pytest.raises(ForbiddenException, match="User has no roles assigned"):
            await authorizer.authorize("user-1", "roles", PermissionAction.READ)

    @pytest.mark.asyncio
    async def test_authorize_any_role(self, authorizer, mock_role_repository):
        mock_role_repository.get_roles_for_user.return_value = [USER_ROLE]

        decision = await authorizer.authorize_any_role("user-1", ["admin", "user"])
        assert decision.allowed is True

        with pytest.raises(ForbiddenException, match="Requires role: admin or moderator"):
            await authorizer.authorize_any_role("user-1", ["moderator", "admin"])

    @pytest.mark.asyncio
    async def test_get_user_permissions(
        self, authorizer, mock_role_repository, mock_permission_repository
    ):
        mock_role_repository.get_roles_for_user.return_value = [USER_ROLE, ADMIN_ROLE]
        mock_permission_repository.get_permissions_for_roles.return_value = [
            RESERVATIONS_READ,
            USERS_MANAGE,
        ]

        permissions = await authorizer.get_user_permissions("user-1")

        assert [p.name for p in permissions] == ["reservations.read", "users.manage"]
        mock_permission_repository.get_permissions_for_roles.assert_awaited_once_with(
            ["role-user", "role-admin"]
        )
