from .query import ExecuteOperationInput, ExecuteQueryInput, QueryClause, QueryDescription
from .shape import SchemaShape
from .tenant import SecretRef, TenantConfig, redact_tenant
from .tool import ToolContext, ToolDefinition

__all__ = [
    "ExecuteOperationInput",
    "ExecuteQueryInput",
    "QueryClause",
    "QueryDescription",
    "SchemaShape",
    "SecretRef",
    "TenantConfig",
    "redact_tenant",
    "ToolContext",
    "ToolDefinition",
]
