"""
API-key utilities guarding the HTTP surface.

Functions
---------
is_valid_api_key(candidate: str | None) -> bool
    Constant-time comparison of a presented key against the configured one.
verify_api_key(x_api_key: str | None) -> None
    FastAPI dependency that rejects requests without a valid ``x-api-key``.

Environment contract (from `settings`)
--------------------------------------
API_KEY : str
    Shared secret clients must send in the ``x-api-key`` header.
"""

import logging
import secrets
from typing import Optional

from fastapi import Header, HTTPException, status
from crm_backend.database.config.config import settings

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-api-key"
"""Name of the header carrying the key."""


def is_valid_api_key(candidate: Optional[str]) -> bool:
    """
    Check a presented key.

    Parameters
    ----------
    candidate : str | None
        Header value, or None if the header is missing.

    Returns
    -------
    bool
        True only when the value equals `settings.API_KEY`.
    """
    if not candidate:
        return False
    return secrets.compare_digest(candidate.encode("utf-8"), settings.API_KEY.encode("utf-8"))


async def verify_api_key(x_api_key: Optional[str] = Header(default=None, alias=API_KEY_HEADER)) -> None:
    """
    FastAPI dependency enforcing the API key.

    Raises
    ------
    HTTPException
        401 with detail "API Key inválida" when the key is missing or wrong.
    """
    if not is_valid_api_key(x_api_key):
        # never log the presented value
        logger.warning("Rejected request with missing or invalid API key")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="API Key inválida")
