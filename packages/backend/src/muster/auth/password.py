"""Password hashing utilities.

Uses bcrypt for password hashing. bcrypt handles salting itself and
produces hashes starting with "$2b$". Passwords are capped at 72 bytes,
bcrypt's input limit; account validation already caps them at 72 chars.
"""

import bcrypt


def hash_password(password: str) -> str:
    """Hash a password with bcrypt (work factor 12, ~100ms per hash)."""
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    """Verify a password against its hash. Members without a hash never match."""
    if not password_hash:
        return False
    try:
        pw_bytes = password.encode("utf-8")[:72]
        return bcrypt.checkpw(pw_bytes, password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False
