"""
Request hardening helpers: bearer token parsing, id validation and the
response security headers.
"""

from __future__ import annotations

import re
from typing import Optional

from fastapi import Request

MAX_AUTH_HEADER_LENGTH = 2000

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
_JWT_PART_RE = re.compile(r"^[A-Za-z0-9_-]+$")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=(), payment=()",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
}


def validate_uuid(value: Optional[str]) -> bool:
    return bool(value) and bool(_UUID_RE.match(value))


def validate_auth_header(header: Optional[str]) -> bool:
    if not header:
        return False
    if "\r" in header or "\n" in header:
        return False
    return len(header) <= MAX_AUTH_HEADER_LENGTH


def validate_jwt_format(token: str) -> bool:
    if not token or len(token) > MAX_AUTH_HEADER_LENGTH:
        return False
    parts = token.split(".")
    return len(parts) == 3 and all(_JWT_PART_RE.match(part) for part in parts)


def extract_bearer_token(header: Optional[str]) -> Optional[str]:
    """Return the token from ``Bearer <jwt>``, or None if malformed."""
    if not validate_auth_header(header):
        return None
    parts = header.split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    token = parts[1]
    return token if validate_jwt_format(token) else None


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


def short_id(user_id: Optional[str]) -> str:
    """Truncated id for log lines."""
    return user_id[:8] if user_id else "unknown"
