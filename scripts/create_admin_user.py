#!/usr/bin/env python3
"""
Admin credentials utility.
Generates the ADMIN_PASSWORD_HASH for .env, checks a password against a hash,
or stores an admin user in the configured database.
"""
import asyncio
import getpass
import sys

from practice_cms.database import AsyncSessionLocal, init_db
from practice_cms.storage import DatabaseStorage
from practice_cms.utils.auth import hash_password, verify_password

USAGE = """Usage:
  python scripts/create_admin_user.py --generate            - Print a new ADMIN_PASSWORD_HASH
  python scripts/create_admin_user.py --verify '<hash>'     - Test a password against a hash
  python scripts/create_admin_user.py --create <username>   - Store an admin user in DATABASE_URL
"""


def prompt_new_password() -> str:
    password = getpass.getpass("Enter admin password: ")
    if not password:
        raise SystemExit("Error: Password cannot be empty")

    if password != getpass.getpass("Confirm password: "):
        raise SystemExit("Error: Passwords do not match")
    return password


async def create_admin(username: str, password_hash: str) -> None:
    await init_db()
    async with AsyncSessionLocal() as session:
        storage = DatabaseStorage(session)
        if await storage.get_admin_user(username):
            raise SystemExit(f"Error: admin user '{username}' already exists")
        await storage.create_admin_user(username, password_hash)
        await session.commit()


def main(argv) -> None:
    if len(argv) < 2:
        print(USAGE)
        return

    command = argv[1]

    if command == "--generate":
        hashed = hash_password(prompt_new_password())
        print("\nCopy this line to your .env file:\n")
        print(f"ADMIN_PASSWORD_HASH={hashed}")

    elif command == "--verify" and len(argv) >= 3:
        password = getpass.getpass("Enter password to test: ")
        if verify_password(password, argv[2]):
            print("Password matches.")
        else:
            raise SystemExit("Password does not match.")

    elif command == "--create" and len(argv) >= 3:
        username = argv[2]
        asyncio.run(create_admin(username, hash_password(prompt_new_password())))
        print(f"Admin user '{username}' created.")

    else:
        print(USAGE)


if __name__ == "__main__":
    main(sys.argv)
