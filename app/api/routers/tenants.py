"""Tenant configuration API router."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException

from app.api.models import TenantListResponse
from app.api.utils import get_schema_cache, get_tenant_store
from app.infra.auth import require_config_write, verify_admin_key
from app.infra.errors import AppError
from app.infra.validation import validate_tenant_id
from app.models.tenant import redact_tenant
from app.services.schema_cache import SchemaCache
from app.services.tenant_store import TenantStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/tenants", tags=["Tenants"], response_model=TenantListResponse)
async def list_tenants(tenant_store: TenantStore = Depends(get_tenant_store)):
    """List configured tenants with credentials redacted."""
    return {"tenants": [redact_tenant(t) for t in tenant_store.list()]}


@router.post(
    "/api/tenants",
    tags=["Tenants"],
    response_model=TenantListResponse,
    dependencies=[Depends(require_config_write), Depends(verify_admin_key)],
)
async def upsert_tenant(
    record: Dict[str, Any] = Body(...),
    tenant_store: TenantStore = Depends(get_tenant_store),
    schema_cache: SchemaCache = Depends(get_schema_cache),
):
    """
    Create or replace a tenant.

    **Example Request:**
    ```json
    {
        "tenantId": "t1",
        "baseUrl": "https://maximo.example.com/maximo",
        "authMode": "apiKey",
        "apiKeyRef": {"type": "env", "name": "T1_MAXIMO_APIKEY"}
    }
    ```
    """
    tenant_id = record.get("tenantId")
    if isinstance(tenant_id, str):
        try:
            validate_tenant_id(tenant_id)
        except ValueError as e:
            raise HTTPException(
                status_code=400,
                detail={"ok": False, "code": "TENANT_INVALID", "message": str(e)},
            )

    try:
        tenants = tenant_store.upsert(record)
    except AppError as e:
        raise HTTPException(status_code=400, detail=e.to_dict())

    dropped = schema_cache.invalidate(tenant_id) if isinstance(tenant_id, str) else 0
    logger.info(f"Tenant {tenant_id} upserted ({dropped} cached shape(s) dropped)")
    return {"tenants": [redact_tenant(t) for t in tenants]}


@router.delete(
    "/api/tenants/{tenant_id}",
    tags=["Tenants"],
    response_model=TenantListResponse,
    dependencies=[Depends(require_config_write), Depends(verify_admin_key)],
)
async def delete_tenant(
    tenant_id: str,
    tenant_store: TenantStore = Depends(get_tenant_store),
    schema_cache: SchemaCache = Depends(get_schema_cache),
):
    """Delete a tenant and drop its cached schema shapes."""
    try:
        tenants = tenant_store.delete(tenant_id)
    except AppError as e:
        raise HTTPException(status_code=400, detail=e.to_dict())

    schema_cache.invalidate(tenant_id)
    logger.info(f"Tenant {tenant_id} deleted")
    return {"tenants": [redact_tenant(t) for t in tenants]}
