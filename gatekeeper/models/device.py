from __future__ import annotations

"""
Authorized device model — the device a user is bound to.

One row per user (unique `user_id`) under both device policies:
- strict: the row is written once and the token never changes.
- lenient: the row is upserted on every login and follows the
  latest device.

`device_fingerprint` is token + issuance time, an audit aid only.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from gatekeeper.core.clock import utcnow
from gatekeeper.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class AuthorizedDevice(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "authorized_devices"

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    device_token: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    device_fingerprint: Mapped[str] = mapped_column(String(300), nullable=False)
    device_name: Mapped[str] = mapped_column(String(100), nullable=False)
    user_agent: Mapped[str] = mapped_column(String(100), nullable=False)
    ip_address: Mapped[str] = mapped_column(String(64), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_access: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<AuthorizedDevice user={self.user_id} active={self.is_active}>"
