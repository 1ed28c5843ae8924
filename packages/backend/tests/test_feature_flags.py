"""Deployment feature flags turn entry points off with a 400."""

import pytest
import pytest_asyncio


@pytest_asyncio.fixture()
async def settings(settings):
    return settings.model_copy(
        update={
            "allow_guests": False,
            "allow_registration": False,
            "allow_external_api": False,
        }
    )


@pytest.mark.asyncio
async def test_recruit_disabled(client):
    r = await client.post("/api/v1/auth/recruit", json={"name": "Nobody"})
    assert r.status_code == 400
    assert r.json()["detail"] == "Guest accounts are disabled"
    assert "warrior" not in client.cookies


@pytest.mark.asyncio
async def test_enlist_disabled(client):
    r = await client.post(
        "/api/v1/auth/enlist",
        json={
            "name": "Nobody",
            "email": "nobody@example.com",
            "password1": "correct-horse",
            "password2": "correct-horse",
        },
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Registration is disabled"


@pytest.mark.asyncio
async def test_api_key_generation_disabled(client, accounts):
    member = await accounts.enlist("Lone", "lone@example.com", "correct-horse", "correct-horse")
    login = await client.post(
        "/api/v1/auth/login", json={"email": "lone@example.com", "password": "correct-horse"}
    )
    assert login.status_code == 200

    r = await client.post(f"/api/v1/members/{member.id}/apikeys", json={"name": "ci"})
    assert r.status_code == 400
    assert r.json()["detail"] == "The external API is disabled"


@pytest.mark.asyncio
async def test_config_reports_flags(client):
    data = (await client.get("/api/v1/config")).json()
    assert data["allow_guests"] is False
    assert data["allow_registration"] is False
    assert data["allow_external_api"] is False
