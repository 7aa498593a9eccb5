"""Request middleware for tracking, CORS, and other cross-cutting concerns."""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from app.infra.config import config

logger = logging.getLogger("app.request")


def is_api_path(path: str) -> bool:
    """True for the JSON surfaces (/api and /mcp)."""
    return path in ("/api", "/mcp") or path.startswith(("/api/", "/mcp/"))


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware to add request ID to all requests."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)

        response.headers["X-Request-ID"] = request_id
        return response


class NoStoreMiddleware(BaseHTTPMiddleware):
    """API and JSON-RPC responses must never be cached by browsers or proxies."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        if is_api_path(request.url.path):
            response.headers["Cache-Control"] = "no-store"
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs one start and one finish line per request, tagged with request and tenant ids."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        context = {
            "request_id": getattr(request.state, "request_id", "unknown"),
            "tenant_id": request.headers.get(config.TENANT_HEADER),
            "method": request.method,
            "path": request.url.path,
        }
        logger.info(
            "Request started",
            extra={**context, "client": request.client.host if request.client else None},
        )

        start_time = time.time()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                extra={**context, "error": str(e), "duration_ms": int((time.time() - start_time) * 1000)},
                exc_info=True,
            )
            raise

        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            "Request completed",
            extra={**context, "status_code": response.status_code, "duration_ms": duration_ms},
        )
        response.headers["X-Response-Time-Ms"] = str(duration_ms)
        return response


def setup_cors(app):
    """Setup CORS middleware."""
    if config.CORS_ORIGINS:
        allowed_origins = [origin.strip() for origin in config.CORS_ORIGINS.split(",") if origin.strip()]
        # Wildcard only outside production
        if config.APP_ENV == "production":
            allowed_origins = [origin for origin in allowed_origins if origin != "*"]
    elif config.APP_ENV == "development":
        allowed_origins = ["*"]
    else:
        allowed_origins = []

    if config.APP_ENV == "production":
        allowed_methods = ["GET", "POST", "DELETE", "OPTIONS"]
        allowed_headers = [
            "Content-Type",
            "Authorization",
            "X-API-Key",
            "X-Request-ID",
            config.TENANT_HEADER,
        ]
    else:
        allowed_methods = ["*"]
        allowed_headers = ["*"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=allowed_origins != ["*"],
        allow_methods=allowed_methods,
        allow_headers=allowed_headers,
        expose_headers=["X-Request-ID", "X-Response-Time-Ms"],
    )
