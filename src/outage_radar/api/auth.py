"""Admin authentication for mutating endpoints."""

from __future__ import annotations

import hmac

from fastapi import HTTPException, Request

API_KEY_HEADER = "X-API-Key"


async def require_api_key(request: Request) -> None:
    """Reject the request unless it carries the configured admin key.

    With no ``api.api_key`` configured every caller is allowed.
    """
    expected = request.app.state.config.api.api_key
    if not expected:
        return
    supplied = request.headers.get(API_KEY_HEADER, "")
    if not hmac.compare_digest(supplied.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
