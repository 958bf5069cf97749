"""Tests for user administration service."""

import pytest
from dataclasses import replace
from datetime import datetime
from unittest.mock import AsyncMock

from booking_auth.core.auth.entities import Role, User
from booking_auth.core.domain.enums import RevocationReason, UserStatus
from booking_auth.core.exceptions import ConflictException, NotFoundException
from booking_auth.core.services.user_admin_service import UserAdminService

NOW = datetime(2026, 1, 1, 12, 0, 0)
USER = User(id="user-1", username="testuser", email="test@example.com", hashed_password="hash")


@pytest.fixture
def mock_user_repository():
    repository = AsyncMock()
    repository.get_user_by_id.return_value = USER
    repository.update_user_fields.side_effect = lambda user_id, **fields: replace(USER, **fields)
    return repository


@pytest.fixture
def mock_refresh_token_repository():
    repository = AsyncMock()
    repository.revoke_user_tokens.return_value = 2
    return repository


@pytest.fixture
def mock_role_repository():
    repository = AsyncMock()
    repository.get_roles_for_user.return_value = [Role(id="role-user", name="user")]
    return repository


@pytest.fixture
def mock_auth_service():
    service = AsyncMock()
    service.revoke_user_sessions.return_value = 4
    return service


@pytest.fixture
def user_service(mock_user_repository, mock_refresh_token_repository, mock_role_repository, mock_auth_service):
    return UserAdminService(
        mock_user_repository,
        mock_refresh_token_repository,
        mock_role_repository,
        mock_auth_service,
        clock=lambda: NOW,
    )


class TestUserAdminService:
    """Test cases for UserAdminService."""

    @pytest.mark.asyncio
    async def test_list_users_returns_profiles(self, user_service, mock_user_repository):
        mock_user_repository.list_users.return_value = ([USER], 1)

        profiles, total = await user_service.list_users(search="test")

        assert total == 1
        assert profiles[0].roles == ("user",)
        mock_user_repository.list_users.assert_awaited_once_with(
            limit=50, offset=0, search="test", include_deleted=False
        )

    @pytest.mark.asyncio
    async def test_get_missing_user(self, user_service, mock_user_repository):
        mock_user_repository.get_user_by_id.return_value = None

        with pytest.raises(NotFoundException):
            await user_service.get_user("ghost")

    @pytest.mark.asyncio
    async def test_delete_user_tombstones_and_revokes(
        self, user_service, mock_user_repository, mock_refresh_token_repository
    ):
        await user_service.delete_user("user-1")

        mock_user_repository.update_user_fields.assert_awaited_once_with(
            "user-1", status=UserStatus.DELETED, deleted_at=NOW
        )
        mock_refresh_token_repository.revoke_user_tokens.assert_awaited_once_with("user-1", NOW)

    @pytest.mark.asyncio
    async def test_restore_user(self, user_service, mock_user_repository):
        mock_user_repository.get_user_by_id.return_value = replace(USER, status=UserStatus.DELETED)

        profile = await user_service.restore_user("user-1")

        assert profile.id == "user-1"
        mock_user_repository.get_user_by_id.assert_awaited_once_with("user-1", include_deleted=True)
        mock_user_repository.update_user_fields.assert_awaited_once_with(
            "user-1", status=UserStatus.ACTIVE, deleted_at=None
        )

    @pytest.mark.asyncio
    async def test_restore_user_not_deleted(self, user_service):
        with pytest.raises(ConflictException, match="User is not deleted"):
            await user_service.restore_user("user-1")

    @pytest.mark.asyncio
    async def test_deactivate_user(self, user_service, mock_refresh_token_repository):
        profile = await user_service.deactivate_user("user-1")

        assert profile.is_active is False
        mock_refresh_token_repository.revoke_user_tokens.assert_awaited_once_with("user-1", NOW)

    @pytest.mark.asyncio
    async def test_reactivate_user(self, user_service, mock_user_repository):
        profile = await user_service.reactivate_user("user-1")

        assert profile.is_active is True
        mock_user_repository.update_user_fields.assert_awaited_once_with("user-1", is_active=True)

    @pytest.mark.asyncio
    async def test_revoke_sessions_delegates(self, user_service, mock_auth_service):
        assert await user_service.revoke_sessions("user-1") == 4

        mock_auth_service.revoke_user_sessions.assert_awaited_once_with(
            "user-1", RevocationReason.ADMIN_REVOKE
        )
