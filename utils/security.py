"""Security helpers for headers, input sanitation, and auth utilities."""
import html
from typing import Mapping, Optional

import bleach


def sanitize_input(data: Mapping) -> dict:
    """Return a sanitized copy of incoming data to reduce injection risk."""
    sanitized = {}
    for key, value in data.items():
        sanitized[html.escape(str(key))] = html.escape(str(value))
    return sanitized


def clean_text(value: Optional[str]) -> Optional[str]:
    """Strip markup from citizen-supplied free text before it is stored."""
    if value is None:
        return None
    cleaned = bleach.clean(str(value), tags=[], attributes={}, strip=True).strip()
    return cleaned or None


def apply_security_headers(response, force_https: bool = False):
    """Apply security headers suitable for a JSON API consumed by mobile clients."""
    response.headers.setdefault("Content-Security-Policy", "default-src 'none'; frame-ancestors 'none'")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "no-referrer")
    response.headers.setdefault("Cache-Control", "no-store")
    if force_https:
        response.headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains; preload")
    return response


def password_meets_policy(password: str) -> tuple[bool, str | None]:
    """Enforce a sane password baseline for citizen accounts."""
    if len(password) < 8:
        return False, "Password must be at least 8 characters long."
    if not any(c.isalpha() for c in password):
        return False, "Include at least one letter."
    if not any(c.isdigit() for c in password):
        return False, "Include at least one digit."
    return True, None
