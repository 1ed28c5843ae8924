"""Event type constants.

Centralizing event types as constants prevents typos and makes it easy
to discover everything the audit log can contain.
"""

# ─── Member lifecycle ────────────────────────────────────

MEMBER_RECRUITED = "member.recruited"
MEMBER_ENLISTED = "member.enlisted"
MEMBER_UPGRADED = "member.upgraded"
MEMBER_VERIFIED = "member.verified"
MEMBER_PROFILE_UPDATED = "member.profile_updated"
MEMBER_PROMOTED = "member.promoted"
MEMBER_DEMOTED = "member.demoted"

# ─── Credentials ─────────────────────────────────────────

PASSWORD_RESET_REQUESTED = "password.reset_requested"
PASSWORD_RESET = "password.reset"
PASSWORD_UPDATED = "password.updated"

# ─── API keys ────────────────────────────────────────────

API_KEY_CREATED = "api_key.created"
API_KEY_UPDATED = "api_key.updated"
API_KEY_DELETED = "api_key.deleted"


def member_stream(member_id) -> str:
    return f"member:{member_id}"
