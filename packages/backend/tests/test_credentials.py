"""Credential resolution and access gate tests.

1. Strategy precedence: the first presented credential decides
2. A rejected API key never falls back to the session cookie
3. Bad or orphaned session cookies fail with 401 and clear both cookies
4. admin_gate: 401 without credentials, 403 for non-admins
"""

import uuid

import pytest
from starlette.requests import Request

from muster.auth.cookies import SessionCookieCodec
from muster.auth.resolver import CredentialResolver
from muster.errors import AuthenticationError

COOKIE_SECRET = "test-cookie-secret"


def _request(headers: dict | None = None) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw})


class StubStrategy:
    def __init__(self, channel, presented, member_id=None):
        self.channel = channel
        self._presented = presented
        self.member_id = member_id
        self.calls = 0

    def presented(self, request):
        return self._presented

    async def resolve(self, request):
        self.calls += 1
        if self.member_id is None:
            raise AuthenticationError("rejected")
        return self.member_id


def _cleared(response, name: str) -> bool:
    return any(
        c.startswith(f"{name}=") and "Max-Age=0" in c
        for c in response.headers.get_list("set-cookie")
    )


def _session_token(client) -> str:
    return client.cookies["warrior"].strip('"')


async def _api_key(client, member_id: str) -> str:
    r = await client.post(f"/api/v1/members/{member_id}/apikeys", json={"name": "cli"})
    assert r.status_code == 201, r.text
    return r.json()["key"]


# ═══════════════════════════════════════════════════════════
# Resolver (unit)
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_first_presented_strategy_wins():
    first_id, second_id = uuid.uuid4(), uuid.uuid4()
    skipped = StubStrategy("a", presented=False, member_id=uuid.uuid4())
    first = StubStrategy("b", presented=True, member_id=first_id)
    second = StubStrategy("c", presented=True, member_id=second_id)

    resolved = await CredentialResolver([skipped, first, second]).resolve(_request())
    assert resolved.member_id == first_id
    assert resolved.channel == "b"
    assert skipped.calls == 0
    assert second.calls == 0


@pytest.mark.asyncio
async def test_rejection_is_final():
    failing = StubStrategy("a", presented=True)
    fallback = StubStrategy("b", presented=True, member_id=uuid.uuid4())

    with pytest.raises(AuthenticationError):
        await CredentialResolver([failing, fallback]).resolve(_request())
    assert fallback.calls == 0


@pytest.mark.asyncio
async def test_nothing_presented():
    with pytest.raises(AuthenticationError):
        await CredentialResolver([StubStrategy("a", presented=False)]).resolve(_request())


# ═══════════════════════════════════════════════════════════
# API key precedence (HTTP)
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_invalid_api_key_does_not_fall_back_to_cookie(client, enlist):
    await enlist("holder@example.com")
    assert (await client.get("/api/v1/auth/me")).status_code == 200

    r = await client.get("/api/v1/auth/me", headers={"X-API-Key": "mk_not-a-real-key"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid API key"
    assert not _cleared(r, "warrior")


@pytest.mark.asyncio
async def test_api_key_beats_session_cookie(client, enlist):
    owner = await enlist("key-owner@example.com")
    key = await _api_key(client, owner["id"])

    other = await enlist("cookie-holder@example.com")
    r = await client.get("/api/v1/auth/me", headers={"X-API-Key": key})
    assert r.status_code == 200
    assert r.json()["id"] == owner["id"]
    assert r.json()["id"] != other["id"]


@pytest.mark.asyncio
async def test_blank_api_key_header_uses_cookie(client, enlist):
    member = await enlist("blank@example.com")
    r = await client.get("/api/v1/auth/me", headers={"X-API-Key": "   "})
    assert r.status_code == 200
    assert r.json()["id"] == member["id"]


# ═══════════════════════════════════════════════════════════
# Session cookie failures (HTTP)
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_tampered_cookie_rejected_and_cleared(client, enlist):
    await enlist("tamper@example.com")
    token = _session_token(client)
    i = len(token) // 2
    tampered = token[:i] + ("A" if token[i] != "A" else "B") + token[i + 1:]

    client.cookies.clear()
    r = await client.get("/api/v1/auth/me", headers={"Cookie": f"warrior={tampered}"})
    assert r.status_code == 401
    assert _cleared(r, "warrior")
    assert _cleared(r, "warrior_ui")


@pytest.mark.asyncio
async def test_cookie_from_another_secret_rejected(client, enlist):
    member = await enlist("foreign@example.com")
    foreign = SessionCookieCodec("some-other-secret", "warrior", 30).encode(member["id"])

    client.cookies.clear()
    r = await client.get("/api/v1/auth/me", headers={"Cookie": f"warrior={foreign}"})
    assert r.status_code == 401
    assert _cleared(r, "warrior")


@pytest.mark.asyncio
async def test_cookie_for_missing_member_rejected_and_cleared(client):
    orphan = SessionCookieCodec(COOKIE_SECRET, "warrior", 30).encode(str(uuid.uuid4()))

    r = await client.get("/api/v1/auth/me", headers={"Cookie": f"warrior={orphan}"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Unknown member"
    assert _cleared(r, "warrior")
    assert _cleared(r, "warrior_ui")


@pytest.mark.asyncio
async def test_cookie_with_non_uuid_subject_rejected(client):
    odd = SessionCookieCodec(COOKIE_SECRET, "warrior", 30).encode("not-a-uuid")

    r = await client.get("/api/v1/auth/me", headers={"Cookie": f"warrior={odd}"})
    assert r.status_code == 401
    assert _cleared(r, "warrior")


# ═══════════════════════════════════════════════════════════
# Admin gate
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_admin_gate_requires_credentials(client):
    r = await client.get("/api/v1/admin/stats")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_admin_gate_rejects_registered(client, enlist):
    await enlist("plain@example.com")
    r = await client.get("/api/v1/admin/stats")
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_admin_gate_rejects_guest(client):
    await client.post("/api/v1/auth/recruit", json={"name": "Visitor"})
    r = await client.get("/api/v1/admin/stats")
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_admin_gate_admits_admin(client, enlist, accounts):
    member = await enlist("boss@example.com")
    await accounts.promote(uuid.UUID(member["id"]))

    r = await client.get("/api/v1/admin/stats")
    assert r.status_code == 200
    assert r.json()["admin_count"] == 1


@pytest.mark.asyncio
async def test_admin_gate_accepts_admin_api_key(client, enlist, accounts):
    member = await enlist("robot-boss@example.com")
    await accounts.promote(uuid.UUID(member["id"]))
    key = await _api_key(client, member["id"])

    client.cookies.clear()
    r = await client.get("/api/v1/admin/stats", headers={"X-API-Key": key})
    assert r.status_code == 200
