"""Fixtures for repository tests against a real SQLite database."""

import pytest_asyncio

from booking_auth.core.auth.entities import User
from booking_auth.infrastructure.database.repositories.user_repository import SqlUserRepository


@pytest_asyncio.fixture
async def user_repository(db_session):
    return SqlUserRepository(db_session)


@pytest_asyncio.fixture
async def stored_user(user_repository):
    """Create a persisted user."""
    return await user_repository.create_user(
        User(
            id="",
            username="testuser",
            email="test@example.com",
            hashed_password="$2b$04$hashed_password_example",
        )
    )
