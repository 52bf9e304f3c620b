"""
Login attempt audit trail.

Best-effort: the attempt is written in its own short-lived session
(so a broken request transaction cannot take it down) with a bounded
timeout, and any failure is logged and dropped.  The caller's
response never depends on whether the audit row made it.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gatekeeper.core.clock import Clock, utcnow
from gatekeeper.core.config import Settings
from gatekeeper.models.login_attempt import LoginAttempt

logger = logging.getLogger(__name__)


class AttemptLogger:
    def __init__(
        self,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._timeout = settings.STORE_TIMEOUT_SECONDS
        self._clock = clock

    async def record(
        self,
        *,
        username: str | None,
        ip_address: str,
        device_token: str | None,
        success: bool,
        failure_code: str | None = None,
        failure_reason: str | None = None,
    ) -> bool:
        """Append one attempt.  Returns False (never raises) on failure."""
        attempt = LoginAttempt(
            username=username,
            ip_address=ip_address,
            device_token=device_token,
            success=success,
            failure_code=failure_code,
            failure_reason=failure_reason,
            timestamp=self._clock(),
        )
        try:
            await asyncio.wait_for(self._insert(attempt), self._timeout)
        except Exception:
            logger.exception("Could not record login attempt for %r", username)
            return False
        return True

    async def _insert(self, attempt: LoginAttempt) -> None:
        async with self._session_factory() as db:
            db.add(attempt)
            await db.commit()
