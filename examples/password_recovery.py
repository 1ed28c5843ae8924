#!/usr/bin/env python3
"""
Muster password recovery walkthrough.

Requests a reset link for a fresh member. With the default console mail
backend the link is printed in the server log; paste its token here to
finish the reset.
Run with: python examples/password_recovery.py

Requires: pip install httpx
Backend must be running: http://localhost:8080, started with
MUSTER_SECURE_COOKIE_FLAG=false so the session cookie works over plain http.
"""

import sys

from _common import check_backend, enlisted_client


def main():
    check_backend()
    client, member = enlisted_client()

    print("\n1. Requesting a reset link...")
    resp = client.post("/auth/forgot-password", json={"email": member["email"]})
    print(f"   {resp.json()['message']}")

    reset_id = input("\nReset token from the server log: ").strip()
    if not reset_id:
        print("No token given, stopping.")
        sys.exit(0)

    print("\n2. Resetting the password...")
    resp = client.post("/auth/reset-password", json={
        "reset_id": reset_id,
        "password1": "brand-new-password",
        "password2": "brand-new-password",
    })
    print(f"   {resp.status_code} {resp.json()}")

    print("\n3. Logging in with the new password...")
    client.cookies.clear()
    resp = client.post("/auth/login", json={
        "email": member["email"],
        "password": "brand-new-password",
    })
    print(f"   Login: {resp.status_code}")


if __name__ == "__main__":
    main()
