"""API request/response models."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


# ============================================================================
# Status Models
# ============================================================================

class StatusResponse(BaseModel):
    """Response model for the dashboard status endpoint."""
    ok: bool = True
    uptime_seconds: int = Field(..., alias="uptimeSeconds")
    tenant_count: int = Field(..., alias="tenantCount")
    tool_catalog_limit: int = Field(..., alias="toolCatalogLimit")
    config_write_enabled: bool = Field(..., alias="configWriteEnabled")
    approvals_enabled: bool = Field(False, alias="approvalsEnabled")

    model_config = {"populate_by_name": True}


class CapabilitiesResponse(BaseModel):
    """What the caller may do through the admin surface."""
    role: str = Field(..., examples=["admin"])
    can_write_config: bool = Field(..., alias="canWriteConfig")
    approvals_enabled: bool = Field(False, alias="approvalsEnabled")

    model_config = {"populate_by_name": True}


class ProviderStatus(BaseModel):
    configured: bool
    models: List[str] = Field(default_factory=list, examples=[["gpt-4o-mini"]])


class ProvidersResponse(BaseModel):
    """LLM providers with credentials present in the environment."""
    providers: Dict[str, ProviderStatus]


# ============================================================================
# Tenant Models
# ============================================================================

class TenantListResponse(BaseModel):
    """Redacted tenant list."""
    tenants: List[Dict[str, Any]]


# ============================================================================
# Agent Models
# ============================================================================

class AgentChatRequest(BaseModel):
    """Request model for the deterministic agent chat."""
    tenant_id: str = Field("", alias="tenantId", description="Tenant to query")
    message: str = Field("", description="Free-text question", examples=["open work orders"])
    provider: Optional[str] = Field(None, description="Name from /api/providers; the planner is deterministic and ignores it")
    model: Optional[str] = Field(None, description="Model from the provider's list; ignored by the planner")

    model_config = {"populate_by_name": True}


class AgentChatResponse(BaseModel):
    answer: str
    trace: List[Dict[str, Any]]
    data: Dict[str, Any]
