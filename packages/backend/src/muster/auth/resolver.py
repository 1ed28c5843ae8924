"""Credential resolution — which member is calling?

Each channel is a small strategy object. The resolver walks a fixed
precedence list and hands the request to the FIRST strategy whose
credential is presented; that strategy's verdict is final. A rejected API
key therefore fails the request even when a valid session cookie rides
along. The session cookie strategy always counts as presented, so it is
the last resort when no API key header was sent.
"""

import uuid
from dataclasses import dataclass
from typing import Protocol, Sequence

import structlog
from starlette.requests import Request

from muster.auth.cookies import CookieDecodeError, SessionCookieCodec
from muster.errors import AuthenticationError
from muster.services.api_key_service import ApiKeyService

logger = structlog.get_logger()

API_KEY = "api_key"
SESSION = "session"


@dataclass(frozen=True)
class ResolvedCredential:
    member_id: uuid.UUID
    channel: str


class CredentialStrategy(Protocol):
    channel: str

    def presented(self, request: Request) -> bool:
        ...

    async def resolve(self, request: Request) -> uuid.UUID:
        ...


class ApiKeyCredential:
    """Resolve via the API key header, looked up in the store."""

    channel = API_KEY

    def __init__(self, header_name: str, api_keys: ApiKeyService):
        self.header_name = header_name
        self.api_keys = api_keys

    def _key(self, request: Request) -> str:
        return request.headers.get(self.header_name, "").strip()

    def presented(self, request: Request) -> bool:
        return bool(self._key(request))

    async def resolve(self, request: Request) -> uuid.UUID:
        member_id = await self.api_keys.authenticate(self._key(request))
        if member_id is None:
            logger.info("auth.api_key_rejected", path=request.url.path)
            raise AuthenticationError("Invalid API key")
        return member_id


class SessionCookieCredential:
    """Resolve via the encrypted backend session cookie."""

    channel = SESSION

    def __init__(self, codec: SessionCookieCodec):
        self.codec = codec

    def presented(self, request: Request) -> bool:
        return True

    def peek(self, request: Request) -> uuid.UUID | None:
        """Decode the cookie if there is a good one, without failing."""
        try:
            return self._decode(request)
        except CookieDecodeError:
            return None

    async def resolve(self, request: Request) -> uuid.UUID:
        try:
            return self._decode(request)
        except CookieDecodeError as e:
            logger.info("auth.session_cookie_rejected", reason=str(e))
            raise AuthenticationError("Invalid session", clear_session=True)

    def _decode(self, request: Request) -> uuid.UUID:
        token = request.cookies.get(self.codec.cookie_name)
        if not token:
            raise CookieDecodeError("no session cookie")
        member_id = self.codec.decode(token)
        try:
            return uuid.UUID(member_id)
        except ValueError as e:
            raise CookieDecodeError("session cookie subject is not a member id") from e


class CredentialResolver:
    """Fixed-precedence resolution over a list of credential strategies."""

    def __init__(self, strategies: Sequence[CredentialStrategy]):
        self.strategies = list(strategies)

    async def resolve(self, request: Request) -> ResolvedCredential:
        for strategy in self.strategies:
            if strategy.presented(request):
                member_id = await strategy.resolve(request)
                return ResolvedCredential(member_id=member_id, channel=strategy.channel)
        raise AuthenticationError()
