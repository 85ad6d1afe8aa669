#!/usr/bin/env python3
"""
Create User Script
Create (or update the role of) a user and print a bearer token for it

There is no registration or login endpoint; this is how operators provision
accounts. Run scripts/init_db.py first outside development and test.

Usage:
    python scripts/create_user.py admin@example.com --role admin
    python scripts/create_user.py alice@example.com --expires-minutes 1440
"""

import argparse
import asyncio
import sys
from datetime import timedelta
from typing import Optional, Tuple

from docvault.core.logging import get_logger, setup_logging
from docvault.core.security import create_access_token
from docvault.db import session as db_session
from docvault.db.models import User, UserRole
from docvault.repositories.users import UserRepository

setup_logging()
logger = get_logger(__name__)


async def create_user(
    email: str,
    role: UserRole = UserRole.USER,
    database_url: Optional[str] = None,
    expires_minutes: Optional[int] = None,
) -> Tuple[User, str]:
    """
    Create the user, or set the role of an existing one, and mint a token

    Returns:
        The user row and an access token whose subject is the user id
    """
    await db_session.init_db(database_url)
    try:
        async with db_session.async_session_maker() as session:
            users = UserRepository(session)
            user = await users.find_by_email(email)
            if user is None:
                user = await users.create(email, role=role)
                logger.info(f"Created user {email} ({role.value})")
            else:
                user = await users.set_role(user, role)
                logger.info(f"User {email} already exists; role set to {role.value}")
            await session.commit()
    finally:
        await db_session.close_db()

    expires_delta = timedelta(minutes=expires_minutes) if expires_minutes else None
    token = create_access_token({"sub": str(user.id)}, expires_delta=expires_delta)
    return user, token


async def main(args: argparse.Namespace) -> int:
    try:
        user, token = await create_user(
            args.email,
            role=UserRole(args.role),
            database_url=args.database_url,
            expires_minutes=args.expires_minutes,
        )
    except Exception as e:
        logger.error(f"Failed to create user {args.email}: {e}")
        return 1

    print(f"User ID: {user.id}")
    print(f"Email: {user.email}")
    print(f"Role: {user.role.value}")
    print(f"Authorization: Bearer {token}")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create a docvault user and print a bearer token")
    parser.add_argument("email")
    parser.add_argument("--role", choices=[r.value for r in UserRole], default=UserRole.USER.value)
    parser.add_argument("--database-url", default=None, help="SQLAlchemy async URL (defaults to DATABASE_URL)")
    parser.add_argument("--expires-minutes", type=int, default=None, help="Token lifetime (defaults to JWT_ACCESS_TOKEN_EXPIRE_MINUTES)")
    sys.exit(asyncio.run(main(parser.parse_args())))
