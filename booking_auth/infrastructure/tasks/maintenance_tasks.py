"""Celery tasks pruning expired token state."""

import logging
from datetime import datetime
from typing import Dict, Optional

from booking_auth.infrastructure.tasks.celery_app import celery_app
from booking_auth.utils.async_helpers import run_async
from booking_auth.utils.time import utcnow

logger = logging.getLogger(__name__)


@celery_app.task
def prune_revoked_tokens() -> Dict:
    """
    Delete blacklist entries whose access token has expired anyway.

    Returns:
        Cleanup result with count of removed entries
    """
    try:
        removed = run_async(prune_revoked_tokens_async())
        return {
            "status": "COMPLETED",
            "entries_removed": removed,
            "completed_at": utcnow().isoformat(),
        }
    except Exception as e:
        logger.exception("Pruning revoked tokens failed")
        return {
            "status": "FAILED",
            "error": str(e),
            "failed_at": utcnow().isoformat(),
        }


@celery_app.task
def cleanup_expired_tokens() -> Dict:
    """
    Clean up expired refresh tokens from database.

    Returns:
        Cleanup result with count of removed tokens
    """
    try:
        removed = run_async(cleanup_expired_refresh_tokens_async())
        return {
            "status": "COMPLETED",
            "tokens_removed": removed,
            "completed_at": utcnow().isoformat(),
        }
    except Exception as e:
        logger.exception("Refresh token cleanup failed")
        return {
            "status": "FAILED",
            "error": str(e),
            "failed_at": utcnow().isoformat(),
        }


@celery_app.task
def health_check_database() -> Dict:
    """
    Probe the database.

    Returns:
        Health check result
    """
    from booking_auth.infrastructure.database.init_db import check_database

    try:
        healthy = run_async(check_database())
        return {
            "status": "COMPLETED",
            "database": "healthy" if healthy else "unhealthy",
            "checked_at": utcnow().isoformat(),
        }
    except Exception as e:
        logger.exception("Database health check failed")
        return {
            "status": "FAILED",
            "error": str(e),
            "failed_at": utcnow().isoformat(),
        }


async def prune_revoked_tokens_async(now: Optional[datetime] = None) -> int:
    """Prune the token blacklist in its own transaction."""
    from booking_auth.infrastructure.database.repositories.revoked_token_repository import (
        SqlRevokedTokenRepository,
    )
    from booking_auth.infrastructure.database.session import get_session_maker

    session_maker = get_session_maker()
    async with session_maker() as session:
        removed = await SqlRevokedTokenRepository(session).prune(now or utcnow())
        await session.commit()

    logger.info(f"Pruned {removed} expired blacklist entries")
    return removed


async def cleanup_expired_refresh_tokens_async(now: Optional[datetime] = None) -> int:
    """Delete expired refresh tokens in their own transaction."""
    from booking_auth.infrastructure.database.repositories.refresh_token_repository import (
        SqlRefreshTokenRepository,
    )
    from booking_auth.infrastructure.database.session import get_session_maker

    session_maker = get_session_maker()
    async with session_maker() as session:
        removed = await SqlRefreshTokenRepository(session).cleanup_expired_tokens(now or utcnow())
        await session.commit()

    logger.info(f"Removed {removed} expired refresh tokens")
    return removed
