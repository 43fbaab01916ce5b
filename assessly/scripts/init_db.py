#!/usr/bin/env python3
"""
Database initialization script.

Creates the Assessly schema for the configured ``DATABASE_URL``, either
through the Alembic migrations (default) or directly from the table
metadata with ``--create-all``.

Usage:
    python -m assessly.scripts.init_db [--create-all] [--database-url URL]
"""

import argparse
import asyncio
import sys

from assessly.config import get_settings
from assessly.common.logger import app_logger
from assessly.database.init_db import close_database, initialize_database, run_migrations

logger = app_logger.getChild("scripts.init_db")


async def create_schema(database_url: str) -> None:
    """Create all tables directly from the metadata."""
    try:
        await initialize_database(database_url=database_url, create_schema=True)
    finally:
        await close_database()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Initialize the Assessly database")
    parser.add_argument("--database-url", default=None, help="Overrides DATABASE_URL")
    parser.add_argument("--create-all", action="store_true",
                        help="Create tables from the metadata instead of running migrations")
    args = parser.parse_args(argv)

    database_url = args.database_url or get_settings().DATABASE_URL
    try:
        if args.create_all:
            asyncio.run(create_schema(database_url))
        else:
            run_migrations(database_url)
    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        return 1

    logger.info("Database initialized successfully")
    return 0


if __name__ == "__main__":
    sys.exit(main())
