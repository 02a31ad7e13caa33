"""
StarOne - Identity Resolution

Maps the identity supplied by the auth proxy to a quota key.
"""

from fastapi import Request
from typing import Optional

from starone.config import get_settings

ANONYMOUS_IDENTITY = "anonymous"


def resolve_identity(value: Optional[str]) -> str:
    """
    Normalize a verified user identity into a quota key.

    Real identities are namespaced so they can never collide with the
    shared anonymous bucket.
    """
    if value is None or not value.strip():
        return ANONYMOUS_IDENTITY
    return f"user:{value.strip().lower()}"


def get_identity(request: Request) -> str:
    """FastAPI dependency reading the identity header."""
    settings = get_settings()
    return resolve_identity(request.headers.get(settings.identity_header))
