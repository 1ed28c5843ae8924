"""FastAPI access gates.

These are used as Depends() in route handlers. Both run the
CredentialResolver and reject with 401 before the handler runs.

1. member_gate — loads the full member record. An id with no backing
   record (deleted or corrupted reference) clears the session cookies
   and fails with 401.
2. admin_gate — asks the store only "is this id an admin?" without
   loading the member, and fails with 403 when it is not.

The resolved identity is returned as an AuthenticatedMember and threaded
into handlers explicitly.
"""

import uuid
from dataclasses import dataclass

import structlog
from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from muster.auth.cookies import SessionCookieCodec
from muster.auth.resolver import (
    ApiKeyCredential,
    CredentialResolver,
    SessionCookieCredential,
)
from muster.config import Settings, get_settings
from muster.db.engine import get_db
from muster.db.models import Member, Role
from muster.errors import AuthenticationError, AuthorizationError
from muster.services.api_key_service import ApiKeyService

logger = structlog.get_logger()


@dataclass(frozen=True)
class AuthenticatedMember:
    """The caller, as established by an access gate."""

    member_id: uuid.UUID
    channel: str  # "api_key" or "session"
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def owns(self, member_id: uuid.UUID) -> bool:
        return self.member_id == member_id


def build_resolver(settings: Settings, db: AsyncSession) -> CredentialResolver:
    """API key first, then session cookie."""
    return CredentialResolver(
        [
            ApiKeyCredential(settings.api_key_header, ApiKeyService(db)),
            SessionCookieCredential(SessionCookieCodec.from_settings(settings)),
        ]
    )


def get_credential_resolver(
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db),
) -> CredentialResolver:
    return build_resolver(settings, db)


async def member_gate(
    request: Request,
    resolver: CredentialResolver = Depends(get_credential_resolver),
    db: AsyncSession = Depends(get_db),
) -> AuthenticatedMember:
    """Require any authenticated member with a live record."""
    credential = await resolver.resolve(request)

    member = await db.get(Member, credential.member_id)
    if member is None:
        logger.warning(
            "auth.member_missing",
            member_id=str(credential.member_id),
            channel=credential.channel,
        )
        raise AuthenticationError("Unknown member", clear_session=True)

    structlog.contextvars.bind_contextvars(member_id=str(member.id))
    return AuthenticatedMember(
        member_id=member.id, channel=credential.channel, role=member.role
    )


async def admin_gate(
    request: Request,
    resolver: CredentialResolver = Depends(get_credential_resolver),
    db: AsyncSession = Depends(get_db),
) -> AuthenticatedMember:
    """Require an admin. Checks the role without loading the member."""
    credential = await resolver.resolve(request)

    q = select(Member.id).where(
        Member.id == credential.member_id, Member.role == Role.ADMIN
    )
    result = await db.execute(q)
    if result.scalar_one_or_none() is None:
        logger.info("auth.admin_denied", member_id=str(credential.member_id))
        raise AuthorizationError("Admin role required")

    structlog.contextvars.bind_contextvars(member_id=str(credential.member_id))
    return AuthenticatedMember(
        member_id=credential.member_id, channel=credential.channel, role=Role.ADMIN
    )
