"""Admin API tests — member management, role changes, audit trail."""

import uuid

import pytest
import pytest_asyncio

PASSWORD = "correct-horse"


@pytest_asyncio.fixture()
async def admin(client, enlist, accounts):
    """Enlist and promote; the client holds the admin's session."""
    member = await enlist("admin@example.com", name="Admin")
    await accounts.promote(uuid.UUID(member["id"]))
    return member


@pytest.mark.asyncio
async def test_create_member_does_not_switch_session(client, admin, mailer):
    r = await client.post(
        "/api/v1/admin/members",
        json={
            "name": "Recruit",
            "email": "recruit@example.com",
            "password1": PASSWORD,
            "password2": PASSWORD,
        },
    )
    assert r.status_code == 201
    assert r.json()["role"] == "registered"
    assert "set-cookie" not in r.headers
    assert len(mailer.to("recruit@example.com")) == 1

    me = await client.get("/api/v1/auth/me")
    assert me.json()["id"] == admin["id"]


@pytest.mark.asyncio
async def test_list_members(client, admin, accounts):
    await accounts.recruit_guest("Guest")
    await accounts.enlist("Second", "second@example.com", PASSWORD, PASSWORD)

    r = await client.get("/api/v1/admin/members")
    assert r.status_code == 200
    emails = [m["email"] for m in r.json()]
    assert emails == ["admin@example.com", "second@example.com"]

    page = await client.get("/api/v1/admin/members", params={"limit": 1, "offset": 1})
    assert [m["email"] for m in page.json()] == ["second@example.com"]


@pytest.mark.asyncio
async def test_promote_and_demote(client, admin, accounts):
    member = await accounts.enlist("Helper", "helper@example.com", PASSWORD, PASSWORD)

    r = await client.post("/api/v1/admin/promote", json={"member_id": str(member.id)})
    assert r.status_code == 200
    assert r.json()["role"] == "admin"

    r = await client.post("/api/v1/admin/demote", json={"member_id": str(member.id)})
    assert r.status_code == 200
    assert r.json()["role"] == "registered"

    events = await client.get(f"/api/v1/admin/members/{member.id}/events")
    assert events.status_code == 200
    types = [e["type"] for e in events.json()]
    assert types[-2:] == ["member.promoted", "member.demoted"]
    assert events.json()[-1]["meta"] == {"actor_id": admin["id"]}


@pytest.mark.asyncio
async def test_promote_unknown_member(client, admin):
    r = await client.post("/api/v1/admin/promote", json={"member_id": str(uuid.uuid4())})
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_demoted_admin_loses_access(client, admin):
    r = await client.post("/api/v1/admin/demote", json={"member_id": admin["id"]})
    assert r.status_code == 200
    assert (await client.get("/api/v1/admin/stats")).status_code == 403


@pytest.mark.asyncio
async def test_non_admin_cannot_promote(client, enlist):
    member = await enlist("ambitious@example.com")
    r = await client.post("/api/v1/admin/promote", json={"member_id": member["id"]})
    assert r.status_code == 403
