"""Session cookie encoding and cookie attributes.

The backend cookie carries the member id encrypted and authenticated with
Fernet (AES-CBC + HMAC-SHA256) under a key derived from the configured
cookie secret. The payload also names the cookie it was issued for, so a
value lifted from another cookie does not decode, and carries its own
lifetime: a registered member's cookie stops decoding after 30 days even
though guest cookies live for a year.

The frontend cookie is a readable hint for the UI (id, name, role). It is
set and cleared together with the backend cookie and is never read back
for authorization.
"""

import base64
import hashlib
import json
import time

from cryptography.fernet import Fernet, InvalidToken
from starlette.responses import Response

from muster.config import Settings
from muster.db.models import Member

DAY_SECONDS = 86400


class CookieDecodeError(Exception):
    """Raised when a session cookie is corrupt, tampered or foreign."""


class SessionCookieCodec:
    """Encode/decode the backend session cookie value."""

    def __init__(self, secret: str, cookie_name: str, max_age_days: int):
        key = base64.urlsafe_b64encode(hashlib.sha256(secret.encode("utf-8")).digest())
        self._fernet = Fernet(key)
        self.cookie_name = cookie_name
        self.max_age = max_age_days * DAY_SECONDS

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionCookieCodec":
        return cls(
            settings.cookie_secret,
            settings.secure_cookie_name,
            max(settings.registered_cookie_days, settings.guest_cookie_days),
        )

    def encode(self, member_id: str, max_age: int | None = None) -> str:
        """Encrypt member_id. max_age (seconds) is capped at the codec lifetime."""
        ttl = min(max_age or self.max_age, self.max_age)
        payload = json.dumps({"name": self.cookie_name, "sub": str(member_id), "ttl": ttl})
        return self._fernet.encrypt(payload.encode("utf-8")).decode("ascii")

    def decode(self, token: str, now: int | None = None) -> str:
        """Return the member id, or raise CookieDecodeError. Never partial."""
        now = int(time.time()) if now is None else now
        try:
            data = token.encode("ascii")
            raw = self._fernet.decrypt_at_time(data, self.max_age, now)
            issued_at = self._fernet.extract_timestamp(data)
            payload = json.loads(raw)
        except (InvalidToken, UnicodeError, ValueError) as e:
            raise CookieDecodeError("session cookie failed verification") from e

        if not isinstance(payload, dict) or payload.get("name") != self.cookie_name:
            raise CookieDecodeError("session cookie issued for another name")
        ttl = payload.get("ttl")
        if not isinstance(ttl, int) or now - issued_at > ttl:
            raise CookieDecodeError("session cookie has expired")
        member_id = payload.get("sub")
        if not isinstance(member_id, str) or not member_id:
            raise CookieDecodeError("session cookie has no subject")
        return member_id


class SessionCookies:
    """Sets and clears the backend/frontend cookie pair on a response."""

    def __init__(self, settings: Settings, codec: SessionCookieCodec | None = None):
        self.settings = settings
        self.codec = codec or SessionCookieCodec.from_settings(settings)

    def issue(self, response: Response, member: Member) -> None:
        days = (
            self.settings.guest_cookie_days
            if member.is_guest
            else self.settings.registered_cookie_days
        )
        max_age = days * DAY_SECONDS
        response.set_cookie(
            self.settings.secure_cookie_name,
            self.codec.encode(str(member.id), max_age=max_age),
            max_age=max_age,
            path=self.settings.cookie_path,
            domain=self.settings.app_domain or None,
            secure=self.settings.secure_cookie_flag,
            httponly=True,
            samesite="strict",
        )
        hint = json.dumps(
            {"id": str(member.id), "name": member.name, "role": member.role.value},
            separators=(",", ":"),
        )
        response.set_cookie(
            self.settings.frontend_cookie_name,
            base64.urlsafe_b64encode(hint.encode("utf-8")).decode("ascii"),
            max_age=max_age,
            path=self.settings.cookie_path,
            secure=self.settings.secure_cookie_flag,
            samesite="strict",
        )

    def clear(self, response: Response) -> None:
        response.delete_cookie(
            self.settings.frontend_cookie_name,
            path=self.settings.cookie_path,
        )
        response.delete_cookie(
            self.settings.secure_cookie_name,
            path=self.settings.cookie_path,
            domain=self.settings.app_domain or None,
            secure=self.settings.secure_cookie_flag,
            httponly=True,
            samesite="strict",
        )
