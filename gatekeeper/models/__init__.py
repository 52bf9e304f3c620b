"""
Models package — import every model so SQLAlchemy's Base.metadata
knows about all tables (critical for `create_all` / Alembic).
"""

from gatekeeper.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from gatekeeper.models.user import User
from gatekeeper.models.device import AuthorizedDevice
from gatekeeper.models.session import ActiveSession
from gatekeeper.models.login_attempt import LoginAttempt

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "User",
    "AuthorizedDevice",
    "ActiveSession",
    "LoginAttempt",
]
