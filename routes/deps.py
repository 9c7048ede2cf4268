"""
Shared route dependencies.

Authentication itself lives in front of this service; requests arrive
with the caller's id in X-User-Id.
"""

from typing import Optional
from fastapi import Header, HTTPException

from config import settings


def verify_api_key(x_api_key: Optional[str] = Header(None)) -> None:
    """Require X-API-Key when an API key is configured."""
    if settings.api_key_required and x_api_key != settings.api_key:
        raise HTTPException(status_code=401, detail="Invalid API key")


def current_user_id(x_user_id: int = Header(..., gt=0)) -> int:
    """Caller id from the X-User-Id header."""
    return x_user_id
