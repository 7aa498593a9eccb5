"""Admin API key check for tenant configuration writes."""

import hmac
import logging
from typing import Optional

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

from app.infra.config import config

logger = logging.getLogger(__name__)

# API key header
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_admin_key(api_key: Optional[str] = Security(api_key_header)) -> None:
    """
    Require X-API-Key to match ADMIN_API_KEY when one is configured.

    Without a configured admin key, writes are gated only by
    CONFIG_WRITE_ENABLED.

    Raises:
        HTTPException: 401 when the key is missing or wrong
    """
    expected = config.ADMIN_API_KEY
    if not expected:
        return

    if not api_key or not hmac.compare_digest(api_key, expected):
        logger.warning("Rejected admin request with missing or invalid API key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"ok": False, "code": "UNAUTHORIZED", "message": "Invalid or missing API key"},
            headers={"WWW-Authenticate": "ApiKey"},
        )


def require_config_write() -> None:
    """Reject tenant writes when CONFIG_WRITE_ENABLED is off."""
    if not config.CONFIG_WRITE_ENABLED:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"ok": False, "code": "CONFIG_WRITE_DISABLED", "message": "Config writes are disabled"},
        )
