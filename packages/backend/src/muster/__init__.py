"""Muster — identity and credential authority.

Resolves who is calling (API key or encrypted session cookie) and owns the
member account lifecycle: enlisting, guest recruiting, verification,
password recovery, role changes and personal API keys.
"""

__version__ = "0.1.0"
