"""Health, status and metrics API router."""

import time

from fastapi import APIRouter, Depends, Request

from app.api.models import CapabilitiesResponse, ProvidersResponse, StatusResponse
from app.api.utils import get_tenant_store
from app.infra.config import config
from app.infra.metrics import get_metrics_response
from app.services.providers import list_providers
from app.services.tenant_store import TenantStore

router = APIRouter()


@router.get("/healthz", tags=["Health"])
async def liveness_probe():
    """Liveness probe - indicates if the process is running."""
    return {"ok": True}


@router.get("/readyz", tags=["Health"])
async def readiness_probe(tenant_store: TenantStore = Depends(get_tenant_store)):
    """Readiness probe - reports how many tenants are loaded."""
    return {"ok": True, "tenants": len(tenant_store.list())}


@router.get("/metrics", tags=["Health"])
async def metrics():
    """Prometheus metrics endpoint."""
    return get_metrics_response()


@router.get("/api/status", tags=["Health"], response_model=StatusResponse, response_model_by_alias=True)
async def status(request: Request, tenant_store: TenantStore = Depends(get_tenant_store)):
    """Dashboard status summary."""
    return StatusResponse(
        uptime_seconds=int(time.time() - request.app.state.started_at),
        tenant_count=len(tenant_store.list()),
        tool_catalog_limit=config.TOOL_CATALOG_LIMIT,
        config_write_enabled=config.CONFIG_WRITE_ENABLED,
        approvals_enabled=config.APPROVALS_ENABLED,
    )


@router.get(
    "/api/capabilities",
    tags=["Health"],
    response_model=CapabilitiesResponse,
    response_model_by_alias=True,
)
async def capabilities():
    """What the admin UI may offer."""
    return CapabilitiesResponse(
        role="admin" if config.CONFIG_WRITE_ENABLED else "viewer",
        can_write_config=config.CONFIG_WRITE_ENABLED,
        approvals_enabled=config.APPROVALS_ENABLED,
    )


@router.get("/api/providers", tags=["Health"], response_model=ProvidersResponse)
async def providers():
    """Which LLM providers have credentials configured, and their model lists."""
    return {"providers": list_providers()}
