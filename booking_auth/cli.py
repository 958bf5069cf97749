"""Command line interface for the booking auth service."""

import asyncio
import sys

import click
from alembic import command
from sqlalchemy.engine import make_url

from booking_auth.core.auth.entities import User
from booking_auth.core.auth.services import PasswordService
from booking_auth.core.exceptions import DomainException
from booking_auth.infrastructure.database.init_db import (
    check_database,
    get_alembic_config,
    init_database,
    seed_default_rbac,
)
from booking_auth.infrastructure.database.repositories.role_repository import SqlRoleRepository
from booking_auth.infrastructure.database.repositories.user_repository import SqlUserRepository
from booking_auth.infrastructure.database.session import close_db_connections, get_session_maker
from booking_auth.infrastructure.tasks.maintenance_tasks import (
    cleanup_expired_refresh_tokens_async,
    prune_revoked_tokens_async,
)
from booking_auth.settings import get_settings
from booking_auth.utils.logging import setup_logging


def _run(coro):
    """Run a coroutine and dispose of the engine it opened."""

    async def runner():
        try:
            return await coro
        finally:
            await close_db_connections()

    return asyncio.run(runner())


@click.group()
def cli():
    """Booking auth service CLI."""
    setup_logging()


@cli.command()
@click.option("--no-migrations", is_flag=True, help="Create tables from the models instead of running Alembic")
def init_db(no_migrations: bool):
    """Bring the schema up to date and seed default roles and permissions."""
    click.echo("Initializing database...")
    _run(init_database(use_migrations=not no_migrations))
    click.echo("Database initialized successfully!")


@cli.command()
def migrate():
    """Run database migrations to the latest version."""
    click.echo("Running database migrations...")
    command.upgrade(get_alembic_config(), "head")
    click.echo("Migrations completed successfully!")


@cli.command()
@click.option("--message", "-m", required=True, help="Migration message")
def create_migration(message: str):
    """Create a new migration file."""
    click.echo(f"Creating migration: {message}")
    command.revision(get_alembic_config(), message=message, autogenerate=True)
    click.echo("Migration created successfully!")


@cli.command()
def current():
    """Show current migration version."""
    command.current(get_alembic_config(), verbose=True)


@cli.command()
def history():
    """Show migration history."""
    command.history(get_alembic_config(), verbose=True)


@cli.command()
@click.option("--revision", "-r", default="-1", help="Revision to downgrade to")
@click.confirmation_option(prompt="Are you sure you want to downgrade the database?")
def downgrade(revision: str):
    """Downgrade database to a previous migration."""
    click.echo(f"Downgrading to revision: {revision}")
    command.downgrade(get_alembic_config(), revision)
    click.echo("Downgrade completed successfully!")


@cli.command()
@click.option("--config", "config_path", default=None, help="RBAC YAML file, defaults to RBAC_CONFIG_PATH")
def seed_rbac(config_path):
    """Load default roles and permissions from YAML."""
    report = _run(seed_default_rbac(config_path))
    click.echo(
        f"Created {report.permissions_created} permission(s), "
        f"{report.roles_created} role(s), {report.grants_created} grant(s)"
    )


@cli.command()
@click.option("--username", prompt=True)
@click.option("--email", prompt=True)
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--role", "role_name", default="admin", show_default=True, help="Role to grant")
def create_admin(username: str, email: str, password: str, role_name: str):
    """Create a user holding the admin role."""
    settings = get_settings()

    async def create():
        session_maker = get_session_maker()
        async with session_maker() as session:
            role = await SqlRoleRepository(session).get_role_by_name(role_name)
            if role is None:
                raise click.ClickException(f"Role '{role_name}' not found. Run seed-rbac first.")

            hashed_password = await PasswordService(settings.bcrypt_rounds).hash_password(password)
            user = await SqlUserRepository(session).create_user(
                User(
                    id="",
                    username=username.strip(),
                    email=email.strip().lower(),
                    hashed_password=hashed_password,
                )
            )
            await SqlRoleRepository(session).grant_role_to_user(user.id, role.id)
            await session.commit()
            return user

    try:
        user = _run(create())
    except DomainException as e:
        raise click.ClickException(e.message)
    click.echo(f"Created user {user.username} ({user.id}) with role {role_name}")


@cli.command()
def prune_tokens():
    """Delete expired blacklist entries and expired refresh tokens."""

    async def prune():
        revoked = await prune_revoked_tokens_async()
        refresh = await cleanup_expired_refresh_tokens_async()
        return revoked, refresh

    revoked, refresh = _run(prune())
    click.echo(f"Removed {revoked} blacklist entries and {refresh} refresh tokens")


@cli.command()
def check_db():
    """Check database connectivity."""
    click.echo("Checking database health...")
    if _run(check_database()):
        click.echo("Database connection is healthy")
    else:
        click.echo("Database connection failed")
        sys.exit(1)


@cli.command()
def show_config():
    """Display current configuration settings, secrets excluded."""
    settings = get_settings()

    click.echo("Current configuration:")
    click.echo(f"  Environment: {settings.environment}")
    click.echo(f"  Debug: {settings.debug}")
    click.echo(f"  Database URL: {make_url(settings.database_url).render_as_string(hide_password=True)}")
    click.echo(f"  JWT Algorithm: {settings.jwt_algorithm}")
    click.echo(f"  Access token expire: {settings.access_token_expire_minutes} minutes")
    click.echo(f"  Refresh token expire: {settings.refresh_token_expire_days} days")
    click.echo(f"  Max login attempts: {settings.max_login_attempts}")
    click.echo(f"  Lockout duration: {settings.lockout_duration_minutes} minutes")
    click.echo(f"  Default role: {settings.default_role_name}")
    click.echo(f"  RBAC config: {settings.rbac_config_path}")

    insecure = settings.insecure_settings()
    if insecure:
        click.echo(f"  WARNING: insecure defaults in use for {', '.join(insecure)}")


if __name__ == "__main__":
    cli()
