"""Common fixtures for integration tests."""

from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from booking_auth.api.dependencies import get_database_session
from booking_auth.infrastructure.database.repositories.role_repository import SqlRoleRepository
from booking_auth.infrastructure.services.yaml_loader import load_rbac_seed, seed_rbac
from booking_auth.main import create_app
from booking_auth.settings import Settings, get_settings

RBAC_CONFIG = Path(__file__).resolve().parents[2] / "config" / "rbac.yaml"
CSRF_TOKEN = "integration-csrf-token"
PASSWORD = "password123"


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        jwt_secret_key="integration-jwt-secret",
        csrf_secret=CSRF_TOKEN,
        bcrypt_rounds=4,
        auto_create_tables=False,
    )


@pytest_asyncio.fixture
async def app(db_session_maker, test_settings):
    """Application wired to the in-memory database with default roles seeded."""
    async with db_session_maker() as session:
        await seed_rbac(session, await load_rbac_seed(str(RBAC_CONFIG)))
        await session.commit()

    application = create_app(test_settings, use_lifespan=False)

    async def override_get_database_session():
        async with db_session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_database_session] = override_get_database_session
    application.dependency_overrides[get_settings] = lambda: test_settings

    yield application

    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app):
    """Client sending the CSRF header on every request."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://testserver",
        headers={"X-CSRF-Token": CSRF_TOKEN},
    ) as async_client:
        yield async_client


@pytest_asyncio.fixture
async def client_without_csrf(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as async_client:
        yield async_client


@pytest.fixture
def register_user(client):
    """Register through the API and return the response data."""

    async def register(username="testuser", email="test@example.com", password=PASSWORD, **extra):
        response = await client.post(
            "/api/v1/auth/register",
            json={"username": username, "email": email, "password": password, **extra},
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return register


@pytest.fixture
def grant_role(db_session_maker):
    """Grant a seeded role by name, bypassing the API."""

    async def grant(user_id, role_name):
        async with db_session_maker() as session:
            role_repository = SqlRoleRepository(session)
            role = await role_repository.get_role_by_name(role_name)
            await role_repository.grant_role_to_user(user_id, role.id)
            await session.commit()
        return role

    return grant


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def registered_user(register_user):
    return await register_user()


@pytest_asyncio.fixture
async def user_headers(registered_user):
    return bearer(registered_user["accessToken"])


@pytest_asyncio.fixture
async def admin_user(register_user, grant_role):
    data = await register_user(username="admin", email="admin@example.com")
    await grant_role(data["user"]["id"], "admin")
    return data


@pytest_asyncio.fixture
async def admin_headers(admin_user):
    return bearer(admin_user["accessToken"])
