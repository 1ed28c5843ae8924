"""Shared route dependencies: services built from app state."""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from muster.auth.cookies import SessionCookies
from muster.config import Settings, get_settings
from muster.db.engine import get_db
from muster.services.account_service import AccountService
from muster.services.api_key_service import ApiKeyService
from muster.services.avatar_service import AvatarProvisioner
from muster.services.email_service import EmailDispatcher


def get_email_dispatcher(request: Request) -> EmailDispatcher:
    return request.app.state.email


def get_avatar_provisioner(request: Request) -> AvatarProvisioner:
    return request.app.state.avatars


def get_session_cookies(settings: Settings = Depends(get_settings)) -> SessionCookies:
    return SessionCookies(settings)


def get_account_service(
    db: AsyncSession = Depends(get_db),
    email: EmailDispatcher = Depends(get_email_dispatcher),
) -> AccountService:
    return AccountService(db, email)


def get_api_key_service(db: AsyncSession = Depends(get_db)) -> ApiKeyService:
    return ApiKeyService(db)
