"""Shared-key guard for the /goals routes.

The host app calls this service from its own backend, so a single key from
MILESTONES_API_KEY is enough. No key configured means an open dev instance.
"""

import hmac

from fastapi import Header, HTTPException

from app.config import settings


def presented_key(x_api_key: str | None, authorization: str | None) -> str | None:
    if x_api_key is not None:
        return x_api_key
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return None


async def verify_api_key(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    authorization: str | None = Header(default=None),
) -> str:
    expected = settings.milestones_api_key
    if expected is None:
        return ""

    key = presented_key(x_api_key, authorization)
    if key is None or not hmac.compare_digest(key.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Milestone API key rejected")
    return key
