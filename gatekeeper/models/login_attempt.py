"""
Login attempt model — append-only audit trail.

One row per login request, success or failure.  Rows are never
updated and never read by the login logic itself.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from gatekeeper.core.clock import utcnow
from gatekeeper.models.base import Base, UUIDPrimaryKeyMixin


class LoginAttempt(Base, UUIDPrimaryKeyMixin):
    __tablename__ = "login_attempts"

    # As supplied by the client, not normalized; null when missing.
    username: Mapped[str | None] = mapped_column(String(256), nullable=True, index=True)
    ip_address: Mapped[str] = mapped_column(String(64), nullable=False)
    device_token: Mapped[str | None] = mapped_column(String(256), nullable=True)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    failure_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(String(256), nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<LoginAttempt {self.username} success={self.success}>"
