"""
Device authorization — binds each user to a single device.

Two mutually exclusive policies (``DEVICE_POLICY``):

- STRICT: the first successful login binds the presented device token.
  Every later login must present exactly that token or it is refused
  with `DeviceMismatch`.  The binding is never replaced; a binding an
  operator switched off refuses every token.
- LENIENT: the user's single device row is upserted on every login
  (token, fingerprint, address and label follow the latest device).

Both policies rely on the unique ``user_id`` of `authorized_devices`.
On PostgreSQL and SQLite the write is a single ``INSERT … ON CONFLICT``
statement, so concurrent first logins cannot create two bindings;
other dialects fall back to read-then-write.
"""

import logging
import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from gatekeeper.core.clock import Clock, utcnow
from gatekeeper.core.config import DevicePolicy, Settings
from gatekeeper.core.database import guarded_call
from gatekeeper.core.errors import DeviceMismatch, DeviceStoreError
from gatekeeper.core.security import device_fingerprint, device_label
from gatekeeper.models.device import AuthorizedDevice
from gatekeeper.models.user import User

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class DeviceAuthorizer:
    def __init__(self, settings: Settings, clock: Clock = utcnow) -> None:
        self.policy = settings.DEVICE_POLICY
        self._label_length = settings.DEVICE_LABEL_MAX_LENGTH
        self._timeout = settings.STORE_TIMEOUT_SECONDS
        self._clock = clock

    async def authorize(
        self,
        db: AsyncSession,
        user: User,
        device_token: str,
        address: str,
        user_agent: str | None,
    ) -> AuthorizedDevice:
        """Create or refresh the user's device row according to the policy.

        Raises `DeviceMismatch` (strict only) or `DeviceStoreError`.
        """
        if self.policy is DevicePolicy.STRICT:
            work = self._bind_strict(db, user, device_token, address, user_agent)
        else:
            work = self._upsert_lenient(db, user, device_token, address, user_agent)

        device = await guarded_call(
            db,
            work,
            error=DeviceStoreError,
            action="Erro ao registrar dispositivo",
            timeout=self._timeout,
        )
        logger.info("Device registered for %s (policy=%s)", user.username, self.policy.value)
        return device

    # ── Helpers ──────────────────────────────────────────────────────

    def _row_values(
        self,
        user: User,
        device_token: str,
        address: str,
        user_agent: str | None,
        now: datetime,
    ) -> dict:
        label = device_label(user_agent, self._label_length)
        return {
            "user_id": user.id,
            "device_token": device_token,
            "device_fingerprint": device_fingerprint(device_token, now),
            "device_name": label,
            "user_agent": label,
            "ip_address": address,
            "is_active": True,
            "last_access": now,
        }

    async def _load(self, db: AsyncSession, user_id: uuid.UUID) -> AuthorizedDevice | None:
        stmt = (
            select(AuthorizedDevice)
            .where(AuthorizedDevice.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    def _dialect_insert(self, db: AsyncSession):
        return _UPSERT_DIALECTS.get(db.get_bind().dialect.name)

    # ── Strict ───────────────────────────────────────────────────────

    async def _bind_strict(
        self,
        db: AsyncSession,
        user: User,
        device_token: str,
        address: str,
        user_agent: str | None,
    ) -> AuthorizedDevice:
        now = self._clock()
        values = self._row_values(user, device_token, address, user_agent, now)
        insert = self._dialect_insert(db)

        if insert is not None:
            stmt = (
                insert(AuthorizedDevice)
                .values(id=uuid.uuid4(), **values)
                .on_conflict_do_nothing(index_elements=["user_id"])
                .returning(AuthorizedDevice.id)
            )
            created = (await db.execute(stmt)).scalar_one_or_none() is not None
            device = await self._load(db, user.id)
        else:
            device = await self._load(db, user.id)
            created = device is None
            if created:
                device = AuthorizedDevice(**values)
                db.add(device)

        if created:
            await db.commit()
            logger.info("First device bound for %s", user.username)
            return device

        if device.device_token != device_token or not device.is_active:
            logger.warning(
                "Device mismatch for %s: bound device differs from presented token",
                user.username,
            )
            raise DeviceMismatch()

        # Known device: refresh where it was seen, never the binding itself.
        device.ip_address = address
        device.device_name = values["device_name"]
        device.user_agent = values["user_agent"]
        device.last_access = now
        await db.commit()
        return device

    # ── Lenient ──────────────────────────────────────────────────────

    async def _upsert_lenient(
        self,
        db: AsyncSession,
        user: User,
        device_token: str,
        address: str,
        user_agent: str | None,
    ) -> AuthorizedDevice:
        now = self._clock()
        values = self._row_values(user, device_token, address, user_agent, now)
        insert = self._dialect_insert(db)

        if insert is not None:
            refreshed = {k: v for k, v in values.items() if k != "user_id"}
            refreshed["updated_at"] = now
            stmt = insert(AuthorizedDevice).values(id=uuid.uuid4(), **values)
            await db.execute(
                stmt.on_conflict_do_update(index_elements=["user_id"], set_=refreshed)
            )
        else:
            device = await self._load(db, user.id)
            if device is None:
                db.add(AuthorizedDevice(**values))
            else:
                for key, value in values.items():
                    setattr(device, key, value)
            await db.flush()

        device = await self._load(db, user.id)
        await db.commit()
        return device
