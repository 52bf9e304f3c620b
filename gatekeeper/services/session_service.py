"""
Session service — lifecycle of server-side sessions.

Handles:
- Issuing a session on login, or refreshing the active one in place
  when the same (user, device) logs in again
- Validating a bearer token (user still active, not expired, inside
  the access window for non-admins)
- Invalidating a token on logout (idempotent)

Every write is committed immediately; store failures and timeouts
surface as `SessionStoreError`.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gatekeeper.core.clock import Clock, ensure_utc, utcnow
from gatekeeper.core.config import Settings
from gatekeeper.core.database import guarded_call
from gatekeeper.core.errors import (
    OutsideAccessWindow,
    SessionExpired,
    SessionNotFound,
    SessionStoreError,
    SessionUserInactive,
)
from gatekeeper.core.security import generate_session_token, mask_token
from gatekeeper.models.session import ActiveSession
from gatekeeper.models.user import User
from gatekeeper.services.access_window import AccessWindowEvaluator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedSession:
    session_token: str
    device_token: str
    ip_address: str
    expires_at: datetime
    refreshed: bool


# ── Queries ──────────────────────────────────────────────────────────


async def get_active_session_for_device(
    user_id: uuid.UUID,
    device_token: str,
    db: AsyncSession,
) -> ActiveSession | None:
    """Return the active session of a (user, device) pair, if any."""
    stmt = select(ActiveSession).where(
        ActiveSession.user_id == user_id,
        ActiveSession.device_token == device_token,
        ActiveSession.is_active == True,  # noqa: E712
    )
    result = await db.execute(stmt)
    return result.scalars().first()


async def deactivate_device_sessions(
    user_id: uuid.UUID,
    device_token: str,
    db: AsyncSession,
) -> int:
    """Mark every active session of a (user, device) pair inactive."""
    stmt = (
        update(ActiveSession)
        .where(
            ActiveSession.user_id == user_id,
            ActiveSession.device_token == device_token,
            ActiveSession.is_active == True,  # noqa: E712
        )
        .values(is_active=False)
    )
    result = await db.execute(stmt)
    return result.rowcount


async def deactivate_session(
    session_id: uuid.UUID,
    db: AsyncSession,
) -> None:
    stmt = (
        update(ActiveSession)
        .where(ActiveSession.id == session_id)
        .values(is_active=False)
        .execution_options(synchronize_session="fetch")
    )
    await db.execute(stmt)


# ── Manager ──────────────────────────────────────────────────────────


class SessionManager:
    def __init__(
        self,
        settings: Settings,
        access_window: AccessWindowEvaluator,
        clock: Clock = utcnow,
    ) -> None:
        self._ttl = timedelta(hours=settings.SESSION_TTL_HOURS)
        self._token_length = settings.SESSION_TOKEN_RANDOM_LENGTH
        self._timeout = settings.STORE_TIMEOUT_SECONDS
        self._access_window = access_window
        self._clock = clock

    async def _guard(self, db: AsyncSession, work, action: str):
        return await guarded_call(
            db, work, error=SessionStoreError, action=action, timeout=self._timeout,
        )

    # ── Issue / refresh ──────────────────────────────────────────────

    async def issue_or_refresh(
        self,
        db: AsyncSession,
        user: User,
        device_token: str,
        address: str,
    ) -> IssuedSession:
        return await self._guard(
            db,
            self._issue_or_refresh(db, user, device_token, address),
            "Erro ao criar sessão",
        )

    async def _issue_or_refresh(
        self,
        db: AsyncSession,
        user: User,
        device_token: str,
        address: str,
    ) -> IssuedSession:
        now = self._clock()
        token = generate_session_token(now, self._token_length)
        expires_at = now + self._ttl

        existing = await get_active_session_for_device(user.id, device_token, db)
        if existing is not None:
            existing.session_token = token
            existing.ip_address = address
            existing.expires_at = expires_at
            existing.last_activity = now
            refreshed = True
            logger.info("Session refreshed for %s", user.username)
        else:
            stale = await deactivate_device_sessions(user.id, device_token, db)
            if stale:
                logger.info("Deactivated %d stale session(s) for %s", stale, user.username)
            db.add(
                ActiveSession(
                    user_id=user.id,
                    device_token=device_token,
                    ip_address=address,
                    session_token=token,
                    created_at=now,
                    last_activity=now,
                    expires_at=expires_at,
                    is_active=True,
                )
            )
            refreshed = False
            logger.info("Session created for %s", user.username)

        await db.commit()
        return IssuedSession(
            session_token=token,
            device_token=device_token,
            ip_address=address,
            expires_at=expires_at,
            refreshed=refreshed,
        )

    # ── Validate ─────────────────────────────────────────────────────

    async def validate(self, db: AsyncSession, session_token: str) -> User:
        """Return the owning user of a valid session.

        Raises `SessionNotFound`, `SessionUserInactive`, `SessionExpired`,
        `OutsideAccessWindow` or `SessionStoreError`.
        """
        return await self._guard(db, self._validate(db, session_token), "Erro ao verificar sessão")

    async def _validate(self, db: AsyncSession, session_token: str) -> User:
        stmt = (
            select(ActiveSession, User)
            .join(User, User.id == ActiveSession.user_id)
            .where(ActiveSession.session_token == session_token)
            .execution_options(populate_existing=True)
        )
        row = (await db.execute(stmt)).one_or_none()
        if row is None:
            raise SessionNotFound()
        session, user = row
        now = self._clock()
        expired = now >= ensure_utc(session.expires_at)

        if not session.is_active:
            # Already ended: answer the same way every time.
            if session.logout_at is None and expired:
                raise SessionExpired()
            if session.logout_at is None and not user.is_active:
                raise SessionUserInactive()
            raise SessionNotFound()

        if not user.is_active:
            await deactivate_session(session.id, db)
            await db.commit()
            logger.info("Session %s closed: user %s inactive", mask_token(session_token), user.username)
            raise SessionUserInactive()

        if expired:
            await deactivate_session(session.id, db)
            await db.commit()
            logger.info("Session %s expired", mask_token(session_token))
            raise SessionExpired()

        if not user.is_admin and not self._access_window.is_within_window(now):
            raise OutsideAccessWindow()

        session.last_activity = now
        await db.commit()
        return user

    # ── Invalidate ───────────────────────────────────────────────────

    async def invalidate(self, db: AsyncSession, session_token: str) -> bool:
        """Log a session out.  Returns whether an active row was closed."""
        return await self._guard(
            db, self._invalidate(db, session_token), "Erro ao fazer logout",
        )

    async def _invalidate(self, db: AsyncSession, session_token: str) -> bool:
        stmt = (
            update(ActiveSession)
            .where(
                ActiveSession.session_token == session_token,
                ActiveSession.is_active == True,  # noqa: E712
            )
            .values(is_active=False, logout_at=self._clock())
            .execution_options(synchronize_session="fetch")
        )
        result = await db.execute(stmt)
        await db.commit()
        closed = bool(result.rowcount)
        logger.info("Logout %s (closed=%s)", mask_token(session_token), closed)
        return closed
