"""Request guards: API key verification and the acting user's id."""

import uuid

from fastapi import Depends, HTTPException, Header

from app.config import settings


async def verify_api_key(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    authorization: str | None = Header(default=None),
) -> str:
    """Validate API key via X-API-Key or Authorization: Bearer.

    If KERNEL_API_KEY is not set, passes through (no auth).
    If set, requires matching key or raises 401.
    """
    if settings.kernel_api_key is None:
        return ""

    key = x_api_key
    if key is None and authorization and authorization.startswith("Bearer "):
        key = authorization[7:].strip()

    if key != settings.kernel_api_key:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")

    return key


async def current_user_id(
    _: str = Depends(verify_api_key),
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> str:
    """User whose goals the request reads and writes.

    Login and sessions live in front of this service; it only trusts the
    X-User-Id header passed along by that layer, falling back to
    DEFAULT_USER_ID.
    """
    raw = x_user_id or settings.default_user_id
    try:
        return str(uuid.UUID(raw))
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid X-User-Id: {raw}")
