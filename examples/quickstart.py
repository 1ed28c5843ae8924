#!/usr/bin/env python3
"""
Muster Quickstart — a member's lifecycle in one script.

Guest → enlist (same id) → profile → API key → call with the key →
deactivate the key → logout.
Run with: python examples/quickstart.py

Requires: pip install httpx
Backend must be running: http://localhost:8080, started with
MUSTER_SECURE_COOKIE_FLAG=false so the session cookie works over plain http.
"""

import sys

import httpx

from _common import BASE, check_backend


def main():
    check_backend()
    client = httpx.Client(base_url=BASE, timeout=10)

    # ── Guest ─────────────────────────────────────────────────────
    print("\n1. Recruiting a guest...")
    resp = client.post("/auth/recruit", json={"name": "Quickstart Guest"})
    assert resp.status_code == 201, f"Failed: {resp.text}"
    guest = resp.json()
    print(f"   Guest: {guest['name']} ({guest['id'][:8]}...)")

    # ── Enlist from the guest session ─────────────────────────────
    print("\n2. Enlisting (upgrades the guest in place)...")
    email = f"quickstart-{guest['id'][:8]}@example.com"
    resp = client.post("/auth/enlist", json={
        "name": "Quickstart Member",
        "email": email,
        "password1": "demo-password-123",
        "password2": "demo-password-123",
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"
    member = resp.json()
    assert member["id"] == guest["id"]
    print(f"   Member: {member['email']} role={member['role']} (same id)")

    # ── Profile ───────────────────────────────────────────────────
    print("\n3. Updating profile...")
    resp = client.put(f"/members/{member['id']}", json={
        "name": "Quickstart Member",
        "avatar": "portrait",
        "notifications_enabled": False,
    })
    assert resp.status_code == 200, f"Failed: {resp.text}"
    print(f"   Avatar URL: {BASE}/avatars/120/{member['id']}?provider=portrait")

    # ── API key ───────────────────────────────────────────────────
    print("\n4. Generating an API key...")
    resp = client.post(f"/members/{member['id']}/apikeys", json={"name": "quickstart"})
    assert resp.status_code == 201, f"Failed: {resp.text}"
    key = resp.json()
    print(f"   Key: {key['prefix']}... (shown once)")

    # ── Call with the key only ────────────────────────────────────
    print("\n5. Calling /auth/me with the API key...")
    with httpx.Client(base_url=BASE, timeout=10, headers={"X-API-Key": key["key"]}) as bot:
        resp = bot.get("/auth/me")
        assert resp.status_code == 200, f"Failed: {resp.text}"
        print(f"   Authenticated as {resp.json()['email']}")

        # ── Deactivate ────────────────────────────────────────────
        print("\n6. Deactivating the key...")
        resp = client.put(
            f"/members/{member['id']}/apikeys/{key['id']}", json={"active": False}
        )
        assert resp.status_code == 200, f"Failed: {resp.text}"
        resp = bot.get("/auth/me")
        print(f"   Key now rejected: {resp.status_code}")

    # ── Logout ────────────────────────────────────────────────────
    print("\n7. Logging out...")
    client.post("/auth/logout")
    resp = client.get("/auth/me")
    print(f"   /auth/me after logout: {resp.status_code}")

    print("\nDone.")


if __name__ == "__main__":
    try:
        main()
    except AssertionError as e:
        print(f"\nERROR: {e}")
        sys.exit(1)
