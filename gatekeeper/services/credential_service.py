"""
Credential verification.

Looks up the user by username (trimmed, case-insensitive) and checks
the active flag and the stored password.  The lookup and the password
check are separate calls because the login pipeline may run the
business-hours check between them (it needs to know whether the user
is an admin first).
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from gatekeeper.core.config import Settings
from gatekeeper.core.database import guarded_call
from gatekeeper.core.errors import (
    BadCredentials,
    StoreError,
    UserInactive,
    UserNotFound,
)
from gatekeeper.core.security import passwords_match
from gatekeeper.models.user import User

logger = logging.getLogger(__name__)


def normalize_username(username: str) -> str:
    return username.strip().lower()


class CredentialVerifier:
    def __init__(self, settings: Settings) -> None:
        self._timeout = settings.STORE_TIMEOUT_SECONDS

    async def find_user(self, db: AsyncSession, username: str) -> User:
        """Return the single active user matching `username`."""
        needle = normalize_username(username)
        stmt = select(User).where(func.lower(User.username) == needle).limit(2)
        result = await guarded_call(
            db,
            db.execute(stmt),
            error=StoreError,
            action="Erro ao buscar usuário",
            timeout=self._timeout,
        )
        matches = list(result.scalars().all())

        if len(matches) != 1:
            if matches:
                logger.warning("Ambiguous username %r matched %d users", needle, len(matches))
            else:
                logger.info("User not found: %s", needle)
            raise UserNotFound()

        user = matches[0]
        if not user.is_active:
            logger.info("Inactive user tried to log in: %s", user.username)
            raise UserInactive()
        return user

    @staticmethod
    def check_password(user: User, password: str) -> None:
        if not passwords_match(password, user.password):
            logger.info("Wrong password for user: %s", user.username)
            raise BadCredentials()

    async def verify(self, db: AsyncSession, username: str, password: str) -> User:
        user = await self.find_user(db, username)
        self.check_password(user, password)
        return user
