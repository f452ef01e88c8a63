"""Authentication for the cron trigger endpoint."""

import logging
import secrets
from typing import Optional

from fastapi import HTTPException, Query, Request, Security, status
from fastapi.security import APIKeyHeader

logger = logging.getLogger(__name__)

# Cron token header
cron_token_header = APIKeyHeader(name="X-Cron-Token", auto_error=False)


async def verify_cron_token(
    request: Request,
    header_token: Optional[str] = Security(cron_token_header),
    token: Optional[str] = Query(None, description="Cron token, for ping services that cannot set headers"),
) -> None:
    """
    Check the shared cron token when one is configured.

    Raises:
        HTTPException: If the token is missing or wrong
    """
    expected = getattr(request.app.state, "cron_token", None)
    if not expected:
        return

    provided = header_token or token
    if not provided:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Cron token is missing"
        )

    if not secrets.compare_digest(provided, expected):
        logger.warning(f"Rejected cron trigger from {request.client.host if request.client else 'unknown'}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid cron token"
        )
