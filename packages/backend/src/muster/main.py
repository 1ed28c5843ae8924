"""FastAPI application factory.

create_app(settings) returns a configured FastAPI instance. Everything
process-wide (settings, database engine, email dispatcher, avatar
provisioner) is built here once and parked on app.state; nothing reads
configuration from globals after that.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from muster import __version__
from muster.api import api_router
from muster.config import Settings
from muster.db.engine import build_engine, build_session_factory
from muster.errors import register_exception_handlers
from muster.middleware.request_id import RequestIdMiddleware
from muster.middleware.security import SecurityHeadersMiddleware
from muster.services.avatar_service import AvatarProvisioner
from muster.services.email_service import EmailDispatcher, build_mailer

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    settings: Settings = app.state.settings
    logger.info(
        "muster.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        mail_backend=settings.mail_backend,
        avatar_service=settings.avatar_service,
    )

    yield

    logger.info("muster.shutdown")
    await app.state.engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or Settings()

    app = FastAPI(
        title="Muster",
        description="Identity and credential authority — sessions, API keys, account lifecycle",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.engine = build_engine(settings)
    app.state.session_factory = build_session_factory(app.state.engine)
    app.state.email = EmailDispatcher(build_mailer(settings), settings.app_url)
    app.state.avatars = AvatarProvisioner(settings.avatar_service)

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
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

    register_exception_handlers(app)
    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: muster.main:app)
app = create_app()
