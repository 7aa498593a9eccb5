"""Request timeout configuration and middleware."""

import asyncio
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.infra.config import config


class TimeoutMiddleware(BaseHTTPMiddleware):
    """Middleware to enforce request timeouts.

    On expiry the pending handler is cancelled, which aborts any in-flight
    upstream call; nothing it was computing gets cached.
    """

    def __init__(self, app, timeout: int = 60):
        """
        Initialize timeout middleware.

        Args:
            app: FastAPI application
            timeout: Request timeout in seconds (default: 60)
        """
        super().__init__(app)
        self.timeout = timeout

    async def dispatch(self, request: Request, call_next):
        """Process request with timeout."""
        try:
            return await asyncio.wait_for(call_next(request), timeout=self.timeout)
        except asyncio.TimeoutError:
            return JSONResponse(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                content={
                    "ok": False,
                    "code": "REQUEST_TIMEOUT",
                    "message": f"Request timeout after {self.timeout} seconds",
                },
            )


# Timeout configurations
REQUEST_TIMEOUT = config.REQUEST_TIMEOUT_SECONDS  # inbound HTTP request
UPSTREAM_TIMEOUT = float(config.UPSTREAM_TIMEOUT_SECONDS)  # each Maximo / token call
