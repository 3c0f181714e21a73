"""
Security helpers:
- API key check applied to every route (x-api-key header)
"""

import hmac
import logging
from typing import Optional

from fastapi import Header, HTTPException, Request, status

logger = logging.getLogger("tlsn_verifier.security")

def api_key_matches(provided: Optional[str], expected: str) -> bool:
    """
    Constant-time comparison. An empty configured key never matches,
    so a missing TLSN_VERIFIER_API_KEY locks the service instead of opening it.
    """
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))

async def require_api_key(request: Request, x_api_key: Optional[str] = Header(None)):
    expected = request.app.state.context.settings.api_key
    if not api_key_matches(x_api_key, expected):
        logger.warning({"event": "unauthorized", "path": request.url.path, "client": request.client.host if request.client else None})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid or missing api key")
