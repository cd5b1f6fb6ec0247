"""
Create (or look up) an approved admin account from the command line.

Usage:
    python create_admin.py
"""

import asyncio
import getpass

from portal.core.database import async_session_factory, engine
from portal.core.user_store import ensure_admin


async def main() -> None:
    name = input("Enter name: ").strip()
    email = input("Enter email: ").strip()
    password = getpass.getpass("Enter password: ")

    if len(name) < 2 or "@" not in email or len(password) < 6:
        print("❌ Name needs 2+ characters, a valid email, and a password of 6+ characters")
        return

    async with async_session_factory() as session:
        user = await ensure_admin(name, email, password, session)
    await engine.dispose()

    if user.role != "admin":
        print(f"❌ Email '{user.email}' already belongs to a {user.role} account")
    else:
        print(f"✅ Admin account ready: {user.email} (id={user.id})")


if __name__ == "__main__":
    asyncio.run(main())
