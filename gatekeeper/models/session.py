"""
Active session model — server-side session registry.

Tracks login sessions per (user, device), enabling:
- Opaque bearer tokens validated on every verify call
- In-place refresh when the same device logs in again
- Server-side invalidation (logout, expiry, user deactivation)

The partial unique index keeps at most one *active* row per
(user, device) at the store level; inactive rows are history.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from gatekeeper.core.clock import utcnow
from gatekeeper.models.base import Base, UUIDPrimaryKeyMixin


class ActiveSession(Base, UUIDPrimaryKeyMixin):
    __tablename__ = "active_sessions"

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    device_token: Mapped[str] = mapped_column(String(256), nullable=False)
    ip_address: Mapped[str] = mapped_column(String(64), nullable=False)
    session_token: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    last_activity: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        index=True,
    )
    logout_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_active_sessions_user_device", "user_id", "device_token"),
        Index(
            "uq_active_sessions_user_device_active",
            "user_id",
            "device_token",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active"),
        ),
    )

    def __repr__(self) -> str:
        return f"<ActiveSession user={self.user_id} device={self.device_token} active={self.is_active}>"
