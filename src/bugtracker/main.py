"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Everything a request needs (database handle, token service,
authorization policy, settings) is built here and hung on app.state, so
handlers get it through dependencies and tests can build an app per test
with their own Settings.

Lifespan handles the process-level work: logging banner, dev-time table
creation, the optional bootstrap admin, and engine disposal.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from bugtracker import __version__
from bugtracker.api import api_router
from bugtracker.auth.jwt import TokenService
from bugtracker.auth.policy import Policy
from bugtracker.config import Settings, get_settings
from bugtracker.db.engine import Database
from bugtracker.errors import (
    TrackerError,
    request_validation_handler,
    tracker_error_handler,
    unhandled_error_handler,
)
from bugtracker.log import configure_logging
from bugtracker.middleware.request_id import RequestIdMiddleware
from bugtracker.middleware.security import SecurityHeadersMiddleware
from bugtracker.services.user_service import UserService

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` at shutdown.
    """
    settings: Settings = app.state.settings
    db: Database = app.state.db
    logger.info(
        "bugtracker.starting",
        version=__version__,
        environment=settings.environment,
        policy_mode=settings.policy_mode,
        port=settings.port,
    )

    # Production schemas are managed by Alembic
    if settings.environment == "development":
        await db.create_all()

    if settings.admin_email and settings.admin_username and settings.admin_password:
        async with db.session_factory() as session:
            admin = await UserService(session, settings.bcrypt_rounds).ensure_admin(
                settings.admin_username, settings.admin_email, settings.admin_password
            )
        logger.info("bugtracker.admin_ready", user_id=str(admin.id))

    yield

    logger.info("bugtracker.shutdown")
    await db.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings.log_level, json=settings.log_json)

    app = FastAPI(
        title="Bug Tracker",
        description="Projects, issues and comments for small teams",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.db = Database(settings.database_url, echo=settings.debug)
    app.state.tokens = TokenService(settings)
    app.state.policy = Policy.for_mode(settings.policy_mode)

    # ── Error rendering ───────────────────────────────────────
    app.add_exception_handler(TrackerError, tracker_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    # Route errors become a 500 inside RequestIdMiddleware; this one only
    # sees failures in the outer middleware.
    app.add_exception_handler(Exception, unhandled_error_handler)

    # ── Middleware stack ──────────────────────────────────────
    # Starlette runs middleware in reverse order of registration.
    # Request flow: CORS → Security → RequestId → handler
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)
    return app


# Default app instance (used by uvicorn: bugtracker.main:app)
app = create_app()
