#!/usr/bin/env python3
"""
Database Initialization Script
Create every docvault table, whatever ENVIRONMENT says

Usage:
    python scripts/init_db.py
    python scripts/init_db.py --database-url postgresql+asyncpg://user:pass@db/docvault
"""

import argparse
import asyncio
import sys
from typing import Optional

from docvault.core.logging import get_logger, setup_logging
from docvault.db import session as db_session

setup_logging()
logger = get_logger(__name__)


async def main(database_url: Optional[str] = None) -> int:
    """Main initialization function"""
    logger.info("Initializing database...")

    try:
        await db_session.init_db(database_url, create_schema=True)
        logger.info("Database initialized successfully!")
        return 0
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        return 1
    finally:
        await db_session.close_db()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the docvault database schema")
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy async URL (defaults to DATABASE_URL)",
    )
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.database_url)))
