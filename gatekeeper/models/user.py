from __future__ import annotations

"""
User model.

Owned by whoever administers the portal; the gatekeeper only reads it.

Design decisions:
- `username` is unique but looked up case-insensitively
  (`lower(username)`), so "Alice" and "alice" are the same account.
- `password` holds the plaintext comparison value, matching the
  existing user table.  See `gatekeeper.core.security`.
- Admins bypass the business-hours window; everything else about
  login is identical for both kinds of user.
"""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from gatekeeper.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class User(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(128), unique=True, index=True, nullable=False)
    password: Mapped[str] = mapped_column(String(256), nullable=False)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<User {self.username}>"
