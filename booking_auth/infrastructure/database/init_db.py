"""Database initialization utilities."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

# Registers every model on Base.metadata.
from booking_auth.core.services.auth import models  # noqa: F401
from booking_auth.infrastructure.database.connection import Base
from booking_auth.infrastructure.database.session import get_engine, get_session_maker
from booking_auth.infrastructure.services.yaml_loader import SeedReport, load_rbac_seed, seed_rbac
from booking_auth.settings import get_settings

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent.parent


def get_alembic_config() -> Config:
    """Build the Alembic config from the project's alembic.ini."""
    alembic_cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    return alembic_cfg


def run_alembic_migrations(revision: str = "head") -> None:
    """Run all pending Alembic migrations."""
    command.upgrade(get_alembic_config(), revision)


async def create_tables(engine: Optional[AsyncEngine] = None) -> None:
    """Create missing tables straight from the model metadata."""
    engine = engine or get_engine()
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)


async def check_database(engine: Optional[AsyncEngine] = None) -> bool:
    """
    Probe the database with a trivial query.

    Returns:
        True if the database answered, False otherwise
    """
    engine = engine or get_engine()
    try:
        async with engine.connect() as connection:
            await connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


async def seed_default_rbac(config_path: Optional[str] = None) -> SeedReport:
    """Load the RBAC YAML file and apply it in its own transaction."""
    settings = get_settings()
    seed = await load_rbac_seed(config_path or settings.rbac_config_path)

    session_maker = get_session_maker()
    async with session_maker() as session:
        try:
            report = await seed_rbac(session, seed)
            await session.commit()
            return report
        except Exception:
            await session.rollback()
            raise


async def init_database(use_migrations: bool = True) -> None:
    """
    Bring the schema up to date and seed default roles and permissions.

    Args:
        use_migrations: Run Alembic; otherwise create tables from metadata
    """
    try:
        if use_migrations:
            logger.info("Running database migrations...")
            await asyncio.to_thread(run_alembic_migrations)
            logger.info("Database migrations completed successfully")
        else:
            await create_tables()
            logger.info("Database tables created")

        await seed_default_rbac()
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise
