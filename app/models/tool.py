"""Tool catalog models."""

import copy
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, TYPE_CHECKING
from pydantic import BaseModel, Field

from app.models.tenant import TenantConfig

if TYPE_CHECKING:
    from app.adapters.maximo_client import MaximoClient
    from app.services.schema_cache import SchemaCache


@dataclass
class ToolContext:
    """Per-call context handed to every tool handler."""
    config: Any
    tenant_id: Optional[str]
    schema_cache: "SchemaCache"
    resolve_tenant: Callable[[str], Tuple[TenantConfig, "MaximoClient"]]


ToolHandler = Callable[[ToolContext, Dict[str, Any]], Awaitable[Any]]


class ToolDefinition(BaseModel):
    """A named operation exposed over JSON-RPC."""
    name: str = Field(..., description="Wire method name, unique within the registry")
    description: str = Field(..., description="Tool description")
    input_schema: Dict[str, Any] = Field(..., description="JSON Schema for params")
    annotations: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Side-effect class, tenant scoping and UI hints",
    )
    handler: ToolHandler = Field(..., exclude=True)

    model_config = {"frozen": True}

    def describe(self) -> Dict[str, Any]:
        """Catalog entry as returned by mcp.listTools."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": copy.deepcopy(self.input_schema),
            "annotations": copy.deepcopy(self.annotations),
        }
