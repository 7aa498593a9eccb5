"""Tool input models for Maximo query and operation tools.

Parsing is deliberately lenient: page bounds are clamped by the handler
rather than rejected here.
"""

from typing import Any, Dict, List, Literal, Optional
from pydantic import AliasChoices, BaseModel, Field

OBJECT_STRUCTURE_ALIASES = AliasChoices("objectStructure", "resourceType")


class QueryClause(BaseModel):
    """One `field op value` filter clause."""
    field: str = ""
    op: str = ""
    value: Any = None


class OrderByItem(BaseModel):
    field: str
    dir: Literal["asc", "desc"] = "asc"


class PageSpec(BaseModel):
    limit: Any = None
    offset: Any = None


class QueryDescription(BaseModel):
    select: List[str] = Field(default_factory=list)
    where: List[QueryClause] = Field(default_factory=list)
    order_by: List[OrderByItem] = Field(default_factory=list, alias="orderBy")
    page: PageSpec = Field(default_factory=PageSpec)

    model_config = {"populate_by_name": True}


class TenantScopedInput(BaseModel):
    tenant_id: Optional[str] = Field(None, alias="tenantId")

    model_config = {"populate_by_name": True}


class ExecuteQueryInput(TenantScopedInput):
    object_structure: str = Field(..., min_length=1, validation_alias=OBJECT_STRUCTURE_ALIASES)
    query: QueryDescription = Field(default_factory=QueryDescription)


class OperationTarget(BaseModel):
    object_structure: str = Field("", validation_alias=OBJECT_STRUCTURE_ALIASES)
    key: str = ""

    def to_wire(self) -> Dict[str, str]:
        return {"objectStructure": self.object_structure, "key": self.key}


class ExecuteOperationInput(TenantScopedInput):
    operation: str = Field(..., min_length=1)
    target: OperationTarget = Field(default_factory=OperationTarget)
    payload: Optional[Dict[str, Any]] = None
    mode: Literal["preflight", "commit"] = "preflight"


class ObjectStructureInput(TenantScopedInput):
    object_structure: str = Field(..., min_length=1, validation_alias=OBJECT_STRUCTURE_ALIASES)


class IntentInput(TenantScopedInput):
    intent: str = ""
