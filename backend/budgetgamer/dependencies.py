"""FastAPI dependency injection providers."""

import secrets
from typing import AsyncGenerator, Optional

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from budgetgamer.config import settings
from budgetgamer.db.session import async_session_factory

logger = structlog.get_logger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session for request-scoped usage.

    The session is automatically committed on success or rolled back on error.
    Always closed after the request completes.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def verify_cron_secret(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> None:
    """Reject scheduler calls whose bearer token does not match CRON_SECRET.

    An unset CRON_SECRET rejects every call.

    Raises:
        HTTPException: 401 when the header is missing or the token is wrong
    """
    configured: str = settings.CRON_SECRET
    if not configured:
        logger.warning("cron_secret_not_configured")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not credentials or not secrets.compare_digest(
        credentials.credentials.encode(), configured.encode()
    ):
        logger.warning("cron_secret_rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for work that opens its own sessions, such as schedule runs."""
    return async_session_factory
