"""Admin bearer tokens.

A token is base64("username:timestamp_ms"). Verification only decodes the
token and checks the username against the configured admin users; tokens
do not expire unless a max age is passed.
"""

from __future__ import annotations

import base64
import binascii
import time

from src.common.errors import AuthenticationError


def issue_admin_token(username: str, now: float | None = None) -> str:
    """Issue a token for an admin user."""
    timestamp_ms = int((now if now is not None else time.time()) * 1000)
    raw = f"{username}:{timestamp_ms}".encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def verify_admin_token(
    token: str,
    allowed_usernames: list[str],
    max_age_seconds: float | None = None,
    now: float | None = None,
) -> str:
    """Verify an admin token and return its username.

    Args:
        token: The token, optionally prefixed with "Bearer "
        allowed_usernames: Usernames that may hold a token
        max_age_seconds: Reject tokens older than this (None = never expire)
        now: Current time override, in seconds since the epoch

    Raises:
        AuthenticationError: If the token is missing, malformed, for an
            unknown user, or too old
    """
    if not token:
        raise AuthenticationError("Authentication required")

    if token.startswith("Bearer "):
        token = token[len("Bearer "):]

    try:
        decoded = base64.b64decode(token.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        raise AuthenticationError("Invalid authentication token")

    username, sep, timestamp = decoded.rpartition(":")
    if not sep or not username or not timestamp.isdigit():
        raise AuthenticationError("Invalid authentication token")

    if username not in allowed_usernames:
        raise AuthenticationError("Invalid authentication token")

    if max_age_seconds is not None:
        current = now if now is not None else time.time()
        if current - int(timestamp) / 1000 > max_age_seconds:
            raise AuthenticationError("Authentication token expired")

    return username
