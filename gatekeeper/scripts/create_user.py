"""
Bootstrap script — creates a portal user (optionally an admin).

Usage:
    uv run python -m gatekeeper.scripts.create_user
    uv run python -m gatekeeper.scripts.create_user --admin

The gatekeeper itself never writes users; this is how the first
accounts get into the table.  Passwords are stored as given (see
`gatekeeper.core.security`).
"""

import argparse
import asyncio
import getpass
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from gatekeeper.core.config import settings
from gatekeeper.models.user import User


class UserExists(Exception):
    pass


async def create_user(
    db: AsyncSession,
    *,
    username: str,
    password: str,
    name: str,
    is_admin: bool = False,
) -> User:
    """Insert a user, refusing case-insensitive duplicates."""
    normalized = username.strip().lower()
    existing = (
        await db.execute(select(User).where(func.lower(User.username) == normalized))
    ).scalars().first()
    if existing is not None:
        raise UserExists(normalized)

    user = User(
        id=uuid.uuid4(),
        username=normalized,
        password=password,
        name=name,
        is_admin=is_admin,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    return user


async def main(is_admin: bool) -> None:
    engine = create_async_engine(settings.DATABASE_URL, echo=False)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    async with session_factory() as session:
        # ── Collect input ────────────────────────────────────────────
        print(f"\n🔧  {settings.APP_NAME} — New {'admin' if is_admin else 'user'}\n")
        username = input("  Username:  ").strip()
        name = input("  Full name: ").strip()
        password = getpass.getpass("  Password:  ")
        confirm = getpass.getpass("  Confirm:   ")

        if password != confirm:
            print("\n❌  Passwords do not match.")
        elif not username or not name or not password:
            print("\n❌  All fields are required.")
        else:
            try:
                user = await create_user(
                    session,
                    username=username,
                    password=password,
                    name=name,
                    is_admin=is_admin,
                )
            except UserExists:
                print(f"\n❌  User '{username}' already exists.")
            else:
                print("\n✅  User created successfully!")
                print(f"    ID:       {user.id}")
                print(f"    Username: {user.username}")
                print(f"    Admin:    {user.is_admin}")
                print("\n   You can now log in via POST /api/login\n")

    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create a portal user.")
    parser.add_argument("--admin", action="store_true", help="grant admin (no business-hours limit)")
    args = parser.parse_args()
    asyncio.run(main(args.admin))
