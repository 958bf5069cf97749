"""Tests for role management service."""

import pytest
from unittest.mock import AsyncMock

from booking_auth.core.auth.entities import Role, User
from booking_auth.core.exceptions import ConflictException, NotFoundException
from booking_auth.core.services.role_service import RoleService

MODERATOR = Role(id="role-mod", name="moderator", description="Moderators")
USER = User(id="user-1", username="testuser", email="test@example.com", hashed_password="hash")


@pytest.fixture
def mock_role_repository():
    repository = AsyncMock()
    repository.get_role_by_id.return_value = MODERATOR
    repository.get_role_by_name.return_value = None
    return repository


@pytest.fixture
def mock_user_repository():
    repository = AsyncMock()
    repository.get_user_by_id.return_value = USER
    return repository


@pytest.fixture
def role_service(mock_role_repository, mock_user_repository):
    return RoleService(mock_role_repository, mock_user_repository)


class TestRoleService:
    """Test cases for RoleService."""

    @pytest.mark.asyncio
    async def test_create_role(self, role_service, mock_role_repository):
        mock_role_repository.create_role.side_effect = lambda role: Role(
            id="role-new", name=role.name, description=role.description
        )

        role = await role_service.create_role("reviewer", "Reviews reservations")

        assert role.id == "role-new"
        created = mock_role_repository.create_role.await_args.args[0]
        assert created.name == "reviewer"
        assert created.is_active is True

    @pytest.mark.asyncio
    async def test_create_duplicate_role(self, role_service, mock_role_repository):
        mock_role_repository.get_role_by_name.return_value = MODERATOR

        with pytest.raises(ConflictException, match="Role already exists"):
            await role_service.create_role("moderator")

        mock_role_repository.create_role.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_get_missing_role(self, role_service, mock_role_repository):
        mock_role_repository.get_role_by_id.return_value = None

        with pytest.raises(NotFoundException):
            await role_service.get_role("missing")

    @pytest.mark.asyncio
    async def test_update_role_keeps_unset_fields(self, role_service, mock_role_repository):
        mock_role_repository.update_role.side_effect = lambda role: role

        updated = await role_service.update_role("role-mod", is_active=False)

        assert updated.name == "moderator"
        assert updated.description == "Moderators"
        assert updated.is_active is False

    @pytest.mark.asyncio
    async def test_rename_onto_existing_role(self, role_service, mock_role_repository):
        mock_role_repository.get_role_by_name.return_value = Role(id="role-admin", name="admin")

        with pytest.raises(ConflictException):
            await role_service.update_role("role-mod", name="admin")

    @pytest.mark.asyncio
    async def test_delete_role(self, role_service, mock_role_repository):
        await role_service.delete_role("role-mod")

        mock_role_repository.delete_role.assert_awaited_once_with("role-mod")

    @pytest.mark.asyncio
    async def test_assign_role(self, role_service, mock_role_repository):
        mock_role_repository.user_has_role.return_value = False

        await role_service.assign_role_to_user("user-1", "role-mod")

        mock_role_repository.grant_role_to_user.assert_awaited_once_with("user-1", "role-mod")

    @pytest.mark.asyncio
    async def test_assign_role_twice(self, role_service, mock_role_repository):
        mock_role_repository.user_has_role.return_value = True

        with pytest.raises(ConflictException, match="already has this role"):
            await role_service.assign_role_to_user("user-1", "role-mod")

    @pytest.mark.asyncio
    async def test_assign_role_to_missing_user(self, role_service, mock_user_repository):
        mock_user_repository.get_user_by_id.return_value = None

        with pytest.raises(NotFoundException) as exc_info:
            await role_service.assign_role_to_user("ghost", "role-mod")

        assert exc_info.value.entity == "User"

    @pytest.mark.asyncio
    async def test_remove_role_not_held(self, role_service, mock_role_repository):
        mock_role_repository.revoke_role_from_user.return_value = False

        with pytest.raises(ConflictException, match="does not have this role"):
            await role_service.remove_role_from_user("user-1", "role-mod")

    @pytest.mark.asyncio
    async def test_get_role_user_ids(self, role_service, mock_role_repository):
        mock_role_repository.get_user_ids_for_role.return_value = ["user-1"]

        assert await role_service.get_role_user_ids("role-mod") == ["user-1"]
