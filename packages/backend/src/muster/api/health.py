"""Health check and public app config.

- GET /health → server + database reachability
- GET /config → the flags a UI needs before login
"""

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from muster import __version__
from muster.config import Settings, get_settings
from muster.db.engine import get_db
from muster.schemas.admin import AppConfig

logger = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Check server health and database connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        logger.warning("health.database_unreachable", exc_info=e)
        checks["database"] = "error"

    status = "healthy" if checks["database"] == "ok" else "degraded"
    return {"status": status, **checks}


@router.get("/config", response_model=AppConfig)
async def app_config(settings: Settings = Depends(get_settings)):
    return AppConfig(
        allow_guests=settings.allow_guests,
        allow_registration=settings.allow_registration,
        allow_external_api=settings.allow_external_api,
        avatar_service=settings.avatar_service,
        cookie_name=settings.frontend_cookie_name,
        path_prefix=settings.path_prefix,
        version=__version__,
    )
