"""Caller identity dependencies.

Authentication happens upstream: the gateway sets ``X-Account-ID`` for an
authenticated caller and this service trusts it. Admin routes additionally
require the shared ``X-Admin-Token``.
"""

from __future__ import annotations

import secrets
from uuid import UUID

from fastapi import Header, HTTPException, status

from ...config import get_settings
from ...logging.config import bind_context, get_logger

logger = get_logger(__name__)

ACCOUNT_ID_HEADER = "X-Account-ID"
ADMIN_TOKEN_HEADER = "X-Admin-Token"


async def require_account(
    account_id: str | None = Header(default=None, alias=ACCOUNT_ID_HEADER),
) -> UUID:
    """FastAPI dependency returning the caller's account id.

    Raises:
        HTTPException 401 if the header is missing or malformed.
    """
    if not account_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    try:
        parsed = UUID(account_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid account identifier",
        ) from None

    bind_context(account_id=str(parsed))
    return parsed


async def require_admin(
    admin_token: str | None = Header(default=None, alias=ADMIN_TOKEN_HEADER),
) -> None:
    """FastAPI dependency guarding admin routes with the shared token."""
    expected = get_settings().api.admin_token
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin routes are disabled",
        )
    if not admin_token or not secrets.compare_digest(admin_token, expected):
        logger.warning("Rejected admin request with invalid token")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
