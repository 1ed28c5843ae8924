"""
Shared helpers for Muster examples.

Handles the health check and account setup so each example can focus on
its specific flow.
"""

import sys
import uuid

import httpx

BASE = "http://localhost:8080/api/v1"


def check_backend() -> None:
    """Verify the backend is reachable and healthy."""
    try:
        resp = httpx.get(f"{BASE}/health", timeout=5)
    except httpx.ConnectError:
        print(f"ERROR: Backend not reachable at {BASE}")
        print("Start it with:  muster init-db && muster serve")
        sys.exit(1)

    if resp.status_code != 200:
        print(f"ERROR: Health check returned {resp.status_code}")
        sys.exit(1)

    health = resp.json()
    print("Backend health:")
    print(f"  Status:   {health['status']}")
    print(f"  Database: {health['database']}")

    if health["database"] != "ok":
        print("\nERROR: Database is not reachable. Check MUSTER_DATABASE_URL.")
        sys.exit(1)


def enlisted_client(password: str = "demo-password-123") -> tuple[httpx.Client, dict]:
    """Enlist a fresh member and return (client holding its session, member).

    Uses a unique email per run so examples are idempotent.
    """
    run_id = uuid.uuid4().hex[:8]
    client = httpx.Client(base_url=BASE, timeout=10)
    resp = client.post(
        "/auth/enlist",
        json={
            "name": f"Demo Member {run_id}",
            "email": f"demo-{run_id}@example.com",
            "password1": password,
            "password2": password,
        },
    )
    if resp.status_code != 201:
        print(f"ERROR: Enlist failed: {resp.status_code} {resp.text}")
        sys.exit(1)

    member = resp.json()
    print(f"  Member:   {member['name']} ({member['id'][:8]}...)")
    return client, member
