#!/usr/bin/env python3
"""Create or repair the platform super admin account.

Usage:
    DATABASE_URL=postgresql+asyncpg://... python scripts/create_super_admin.py EMAIL [FULL_NAME]

The password is read from SUPER_ADMIN_PASSWORD, or prompted for when unset.
An existing account with the same email is promoted to super_admin,
reactivated and given the new password.
"""
from __future__ import annotations

import asyncio
import getpass
import os
import sys
from pathlib import Path

_REPO_ROOT = Path(__file__).resolve().parent.parent
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from src.dentacare.core.config import get_settings  # noqa: E402
from src.dentacare.core.security import hash_password  # noqa: E402
from src.dentacare.db.session import close_db, get_db_manager  # noqa: E402
from src.dentacare.models.enums import UserRole  # noqa: E402
from src.dentacare.repositories.user_repository import UserRepository  # noqa: E402

MIN_PASSWORD_LENGTH = 8


async def main(email: str, full_name: str, password: str) -> None:
    db_manager = get_db_manager()
    try:
        async with db_manager.session() as db:
            repo = UserRepository(db)
            user = await repo.get_by_email(email)

            if user:
                print(f"User found: ID={user.id}, role={user.role}. Promoting to super_admin...")
                user.role = UserRole.SUPER_ADMIN.value
                user.clinic_id = None
                user.is_active = True
                user.password_hash = hash_password(password, iterations=get_settings().PASSWORD_HASH_ITERATIONS)
                await db.flush()
            else:
                user = await repo.create(
                    email=email,
                    full_name=full_name,
                    password_hash=hash_password(password, iterations=get_settings().PASSWORD_HASH_ITERATIONS),
                    role=UserRole.SUPER_ADMIN.value,
                )
                print(f"Super admin created: ID={user.id}, Email={user.email}")
    finally:
        await close_db()


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(__doc__, file=sys.stderr)
        sys.exit(1)

    _email = sys.argv[1]
    _full_name = sys.argv[2] if len(sys.argv) > 2 else "Platform Admin"
    _password = os.environ.get("SUPER_ADMIN_PASSWORD") or getpass.getpass("Password: ")
    if len(_password) < MIN_PASSWORD_LENGTH:
        print(f"ERROR: password must be at least {MIN_PASSWORD_LENGTH} characters.", file=sys.stderr)
        sys.exit(1)

    asyncio.run(main(_email, _full_name, _password))
