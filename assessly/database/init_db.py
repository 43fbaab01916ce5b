"""
Engine lifecycle for the SQL storage backend.

The process holds one async engine, created by ``initialize_database`` at
startup and disposed by ``close_database``. The schema comes either from
``create_all`` (tests, local SQLite) or from the packaged Alembic revisions.
"""

import os
from typing import Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from assessly.common.logger import app_logger
from assessly.database.base import Base
from assessly.database import models  # noqa: F401  (registers tables on Base.metadata)

logger = app_logger.getChild("database.init_db")

_engine: Optional[AsyncEngine] = None

# Alembic environment shipped inside the package
MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "alembic")


def get_engine() -> AsyncEngine:
    """The engine opened by ``initialize_database``."""
    if _engine is None:
        raise RuntimeError("Database engine not initialized. Call initialize_database() first.")
    return _engine


def _engine_options(database_url: str, pool_size: int, max_overflow: int, pool_timeout: int) -> dict:
    if database_url.startswith("sqlite"):
        # In-memory SQLite must keep a single connection or each session sees an empty database
        if ":memory:" in database_url or database_url.rstrip("/").endswith(":"):
            return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
        return {}
    return {"pool_size": pool_size, "max_overflow": max_overflow, "pool_timeout": pool_timeout}


async def initialize_database(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_timeout: int = 30,
    create_schema: bool = False,
) -> AsyncEngine:
    """
    Open the engine and check it with a round trip.

    Args:
        database_url: Database connection URL
        echo: Log emitted SQL
        pool_size, max_overflow, pool_timeout: Pool limits (ignored for SQLite)
        create_schema: Create missing tables after connecting

    Returns:
        The engine, also kept as the process engine
    """
    global _engine

    logger.info(f"Connecting to {database_url.split(':', 1)[0]} storage")

    engine = create_async_engine(
        database_url,
        echo=echo,
        future=True,
        **_engine_options(database_url, pool_size, max_overflow, pool_timeout)
    )

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        if create_schema:
            await create_all(engine)
    except Exception as e:
        logger.error(f"Storage connection check failed: {e}")
        await engine.dispose()
        raise

    _engine = engine
    logger.info("Storage engine ready")
    return engine


def get_session_factory(engine: Optional[AsyncEngine] = None) -> sessionmaker:
    """
    Build an AsyncSession factory bound to ``engine`` (the global engine by default).
    """
    return sessionmaker(engine or get_engine(), class_=AsyncSession, expire_on_commit=False)


async def create_all(engine: Optional[AsyncEngine] = None) -> None:
    """Create every table that does not exist yet."""
    async with (engine or get_engine()).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema created")


async def drop_all(engine: Optional[AsyncEngine] = None) -> None:
    """Drop every table. Intended for tests and local resets."""
    async with (engine or get_engine()).begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.warning("Database schema dropped")


async def close_database() -> None:
    """Dispose of the process engine, if one is open."""
    global _engine

    if _engine:
        await _engine.dispose()
        _engine = None
        logger.info("Storage engine closed")


def run_migrations(database_url: str, revision: str = "head") -> None:
    """
    Upgrade the schema with Alembic.

    Args:
        database_url: Database connection URL
        revision: Target revision
    """
    config = Config()
    config.set_main_option("script_location", MIGRATIONS_DIR)
    config.set_main_option("sqlalchemy.url", database_url)
    logger.info(f"Running migrations to {revision}")
    command.upgrade(config, revision)
