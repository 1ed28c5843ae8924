"""Authentication and authorization.

Two credential channels resolve a request to a member id:
1. Personal API key in the X-API-Key header (scripts, integrations)
2. Encrypted session cookie (browsers), issued at login/enlist/recruit

The API key always wins when present; a bad key never falls back to the
cookie. MemberGate and AdminGate turn the resolved id into an
AuthenticatedMember handed to route handlers.
"""
