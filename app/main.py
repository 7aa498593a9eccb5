"""FastAPI application: Maximo MCP gateway."""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.infra.config import config
from app.infra.errors import AppError
from app.infra.logging import app_logger
from app.infra.middleware import (
    NoStoreMiddleware,
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    is_api_path,
    setup_cors,
)
from app.infra.timeout import REQUEST_TIMEOUT, TimeoutMiddleware
from app.services.jsonrpc_dispatcher import JsonRpcDispatcher
from app.services.schema_cache import SchemaCache
from app.services.tenant_store import FileTenantStore, TenantStore, build_tenant_store
from app.services.tool_registry import build_tools
from app.api.routers import agent, health, mcp, tenants


def load_tenant_store() -> TenantStore:
    """Build the configured store; an unreadable tenants file leaves the gateway up with no tenants."""
    try:
        return build_tenant_store(config)
    except AppError as e:
        app_logger.error(f"Failed to load tenants: {e.code} {e.message}", extra={"details": e.details})
        return FileTenantStore(config.TENANTS_FILE)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    app_logger.info(
        "Application starting up",
        extra={"port": config.PORT, "tenants": len(app.state.tenant_store.list())},
    )

    yield

    app_logger.info("Application shutting down")
    engine = getattr(app.state.tenant_store, "engine", None)
    if engine is not None:
        engine.dispose()


def create_app(
    tenant_store: Optional[TenantStore] = None,
    schema_cache: Optional[SchemaCache] = None,
) -> FastAPI:
    """
    Composition root.

    The tenant store, schema cache, tool registry and dispatcher live on
    app.state; nothing below the HTTP layer reads module globals for them.
    """
    app = FastAPI(
        title="Maximo MCP Gateway",
        description="""
    JSON-RPC tool gateway over the Maximo OSLC REST API.

    ## Features

    - **MCP tools**: `POST /mcp` with JSON-RPC 2.0 envelopes (`mcp.listTools`, `maximo.execute_query`, ...)
    - **Tenants**: per-tenant base URL, credentials and auth mode (apiKey, maxauth, oauth)
    - **Schema discovery**: field allowlists inferred per tenant and object structure, cached with a TTL

    ## Tenant selection

    JSON-RPC calls pick the tenant from the `x-tenant-id` header (configurable via
    `TENANT_HEADER`), then `params.tenantId`, then the `tenantId` query parameter.
    """,
        version="1.0.0",
        lifespan=lifespan,
        tags_metadata=[
            {"name": "MCP", "description": "JSON-RPC 2.0 tool dispatch"},
            {"name": "Tenants", "description": "Tenant configuration (redacted reads, gated writes)"},
            {"name": "Agent", "description": "Deterministic plan-and-query chat"},
            {"name": "Health", "description": "Health check, status and monitoring endpoints"},
        ],
    )

    store = tenant_store if tenant_store is not None else load_tenant_store()
    cache = schema_cache if schema_cache is not None else SchemaCache(
        default_ttl_seconds=config.METADATA_TTL_SECONDS,
        max_entries=config.METADATA_CACHE_MAX_ENTRIES,
    )
    registry = build_tools(config, store, cache)

    app.state.started_at = time.time()
    app.state.tenant_store = store
    app.state.schema_cache = cache
    app.state.registry = registry
    app.state.dispatcher = JsonRpcDispatcher(registry, tenant_header=config.TENANT_HEADER)

    # Setup middleware
    # Last added runs outermost: request ids exist before request logging
    app.add_middleware(NoStoreMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(TimeoutMiddleware, timeout=REQUEST_TIMEOUT)
    setup_cors(app)

    # Register routers
    app.include_router(health.router)
    app.include_router(mcp.router)
    app.include_router(tenants.router)
    app.include_router(agent.router)

    # Error handlers
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors."""
        return JSONResponse(
            status_code=422,
            content={
                "ok": False,
                "code": "INVALID_INPUT",
                "message": "Request validation failed",
                "details": [{"loc": list(e["loc"]), "msg": e["msg"]} for e in exc.errors()],
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions; JSON surfaces never fall through to an HTML page."""
        if exc.status_code == 404 and is_api_path(request.url.path):
            return JSONResponse(
                status_code=404,
                content={
                    "ok": False,
                    "code": "NOT_FOUND",
                    "message": f"No route for {request.method} {request.url.path}",
                },
            )
        if isinstance(exc.detail, dict):
            return JSONResponse(status_code=exc.status_code, content=exc.detail, headers=exc.headers)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=exc.headers,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle all other exceptions."""
        error_id = str(uuid.uuid4())
        app_logger.error(f"Unhandled exception: {exc}", exc_info=True, extra={"error_id": error_id})
        return JSONResponse(
            status_code=500,
            content={
                "ok": False,
                "code": "INTERNAL_ERROR",
                "message": f"Internal server error. Error ID: {error_id}",
            },
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=config.PORT,
        timeout_keep_alive=30,
        timeout_graceful_shutdown=30,
    )
