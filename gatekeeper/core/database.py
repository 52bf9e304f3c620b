"""
Async engine, session factory and the per-request session dependency.

Every store call made by a service goes through `guarded_call`, which
bounds it with `STORE_TIMEOUT_SECONDS` and converts driver errors and
timeouts into the caller's store error so nothing leaks past the
service boundary as a raw SQLAlchemy exception.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator, Awaitable
from typing import TypeVar

from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from gatekeeper.core.config import settings
from gatekeeper.core.errors import StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """FastAPI dependency — the factory used for per-request and audit sessions."""
    return SessionLocal


async def guarded_call(
    db: AsyncSession,
    awaitable: Awaitable[T],
    *,
    error: type[StoreError],
    action: str,
    timeout: float,
) -> T:
    """Await a store operation with a bounded timeout.

    On failure the session is rolled back and `error` is raised with the
    underlying message kept for operator diagnosis.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as exc:
        await db.rollback()
        logger.error("%s timed out after %.1fs", action, timeout)
        raise error(action, details=f"timed out after {timeout}s") from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("%s failed: %s", action, exc)
        raise error(action, details=str(exc)) from exc


async def get_db(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield one session per request.

    Services commit their own writes; anything left pending when the
    handler raises is rolled back here.
    """
    async with session_factory() as db:
        try:
            yield db
        except Exception:
            await db.rollback()
            raise
