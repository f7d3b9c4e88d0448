# scripts/create_admin.py
"""Interactively create an admin account: python scripts/create_admin.py"""
import asyncio
import getpass
import sys

from dotenv import load_dotenv
load_dotenv()

from storefront import crud
from storefront.db import engine, AsyncSessionLocal, Base


def prompt_details():
    username = input("Username: ").strip()
    email = input("Email: ").strip()
    password = getpass.getpass("Password: ")
    confirm = getpass.getpass("Confirm Password: ")
    if password != confirm:
        sys.exit("Passwords do not match")
    if len(password) < 8:
        sys.exit("Password must be at least 8 characters long")
    if not username or not email:
        sys.exit("Username and email are required")
    return username, email, password


async def main():
    print("Create Admin User")
    print("=================")
    username, email, password = prompt_details()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        if await crud.admin_exists(session, username, email):
            sys.exit("Username or email already exists")
        admin = await crud.create_admin(session, username, email, password)

    print("\nAdmin user created successfully:")
    print(f"ID: {admin.id}")
    print(f"Username: {admin.username}")
    print(f"Email: {admin.email}")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
