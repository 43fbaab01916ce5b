"""
Assessly Online Assessment Engine

This module is the entry point of the Assessly backend. It builds the
FastAPI application that serves:
1. The question bank and test definitions
2. Eligibility groups, access roles and assignments
3. Timed, token-gated attempts with proctoring violations
4. Manual evaluation of descriptive answers and summary reports
"""

import random
from contextlib import asynccontextmanager
from typing import Callable, Optional
from datetime import datetime

from fastapi import FastAPI

from assessly.common.logger import configure_logger, get_logger

logger = get_logger("app")

__version__ = "0.1.0"


def _configure(settings) -> None:
    from assessly.common.auth.jwt import JWTConfig, set_jwt_config

    configure_logger(
        name="assessly",
        level=settings.LOG_LEVEL,
        use_json=settings.LOG_JSON,
        log_file=settings.LOG_FILE
    )
    set_jwt_config(JWTConfig(
        secret_key=settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
        access_token_expires=settings.ACCESS_TOKEN_EXPIRE_MINUTES
    ))


def _install_engine(app: FastAPI, repositories) -> None:
    from assessly.assessments.engine import AttemptEngine

    app.state.repositories = repositories
    app.state.engine = AttemptEngine(
        repositories,
        clock=app.state.clock,
        rng=app.state.rng,
        token_bytes=app.state.settings.ATTEMPT_TOKEN_BYTES
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI application lifespan context manager.

    Opens the SQL engine and builds the SQL repositories on startup when the
    ``sql`` storage backend is selected, and disposes of the engine on shutdown.
    """
    from assessly.database import close_database, get_session_factory, initialize_database
    from assessly.storage import build_sql_repositories

    settings = app.state.settings
    logger.info("Application startup sequence initiated.")

    use_sql = settings.STORAGE_BACKEND == "sql" and getattr(app.state, "repositories", None) is None
    if use_sql:
        engine = await initialize_database(
            settings.DATABASE_URL,
            echo=settings.SQL_ECHO,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            create_schema=settings.AUTO_CREATE_SCHEMA
        )
        _install_engine(app, build_sql_repositories(get_session_factory(engine)))
        logger.info("SQL storage ready")

    logger.info("Application startup sequence complete.")
    yield

    logger.info("Application shutdown sequence initiated.")
    if use_sql:
        await close_database()
        app.state.repositories = None
    logger.info("Application shutdown sequence complete.")


def create_app(
    settings=None,
    repositories=None,
    clock: Optional[Callable[[], datetime]] = None,
    rng: Optional[random.Random] = None
) -> FastAPI:
    """
    Create and configure a FastAPI application instance.

    Args:
        settings: Settings to use (``get_settings()`` by default)
        repositories: Pre-built stores; when omitted the configured storage backend is used
        clock: Naive-UTC clock injected into the attempt engine
        rng: Random source for question and option shuffling

    Returns:
        Configured FastAPI application
    """
    from fastapi.exceptions import RequestValidationError
    from fastapi.middleware.cors import CORSMiddleware

    from assessly.api import assessly_exception_handler, build_main_router, validation_exception_handler
    from assessly.assessments.controllers import ROUTERS
    from assessly.common.error_handling import AssesslyError
    from assessly.common.utils import utcnow
    from assessly.config import get_settings
    from assessly.storage import build_memory_repositories

    settings = settings or get_settings()
    _configure(settings)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Online test and assessment engine",
        version=__version__,
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.clock = clock or utcnow
    app.state.rng = rng
    app.state.repositories = None

    if repositories is None and settings.STORAGE_BACKEND == "memory":
        repositories = build_memory_repositories()
    if repositories is not None:
        _install_engine(app, repositories)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(build_main_router(ROUTERS, prefix=settings.API_PREFIX))

    app.add_exception_handler(AssesslyError, assessly_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    logger.info(f"Application created with {len(app.routes)} routes ({settings.STORAGE_BACKEND} storage)")
    return app
