"""Fixed catalog of Maximo tools exposed over JSON-RPC."""

import logging
import math
import sys
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from app.adapters.maximo_client import MaximoClient
from app.infra.errors import (
    FieldNotAllowedError,
    FilterFieldNotAllowedError,
    InvalidInputError,
    TenantNotFoundError,
)
from app.infra.validation import validation_details
from app.models.query import (
    ExecuteOperationInput,
    ExecuteQueryInput,
    IntentInput,
    ObjectStructureInput,
    TenantScopedInput,
)
from app.models.tenant import TenantConfig, redact_tenant
from app.models.tool import ToolContext, ToolDefinition
from app.services.intent_planner import plan_intent
from app.services.query_translator import SUPPORTED_OPS, to_native_filter, to_order_by
from app.services.schema_cache import SchemaCache
from app.services.tenant_store import TenantStore

logger = logging.getLogger(__name__)

InputModel = TypeVar("InputModel", bound=BaseModel)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200

BUILTIN_OBJECT_STRUCTURES = ["mxwo", "mxasset", "mxlocation", "mxsr", "mxinv", "mxjobplan", "mxpm"]

PREFLIGHT_NOTE = (
    "Preflight is best-effort in this build; enable domain rules for strict validation."
)

_TENANT_ONLY_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "required": ["tenantId"],
    "properties": {"tenantId": {"type": "string"}},
}

_EMPTY_SCHEMA = {"type": "object", "additionalProperties": False, "properties": {}}

EXECUTE_QUERY_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "required": ["tenantId", "objectStructure", "query"],
    "properties": {
        "tenantId": {"type": "string"},
        "objectStructure": {"type": "string"},
        "query": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "select": {"type": "array", "items": {"type": "string"}},
                "where": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "additionalProperties": False,
                        "required": ["field", "op"],
                        "properties": {
                            "field": {"type": "string"},
                            "op": {"type": "string", "enum": list(SUPPORTED_OPS)},
                            "value": {},
                        },
                    },
                },
                "orderBy": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "additionalProperties": False,
                        "required": ["field", "dir"],
                        "properties": {
                            "field": {"type": "string"},
                            "dir": {"type": "string", "enum": ["asc", "desc"]},
                        },
                    },
                },
                "page": {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {
                        "limit": {"type": "integer", "minimum": 1, "maximum": MAX_PAGE_SIZE},
                        "offset": {"type": "integer", "minimum": 0},
                    },
                },
            },
        },
    },
}

EXECUTE_OPERATION_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "required": ["tenantId", "operation", "target"],
    "properties": {
        "tenantId": {"type": "string"},
        "operation": {"type": "string"},
        "target": {
            "type": "object",
            "additionalProperties": False,
            "required": ["objectStructure", "key"],
            "properties": {
                "objectStructure": {"type": "string"},
                "key": {"type": "string"},
            },
        },
        "payload": {"type": "object"},
        "mode": {"type": "string", "enum": ["preflight", "commit"], "default": "preflight"},
    },
}


def parse_input(model: Type[InputModel], params: Any) -> InputModel:
    """Validate tool params; pydantic failures surface as INVALID_INPUT."""
    try:
        return model.model_validate(params if params is not None else {})
    except ValidationError as e:
        raise InvalidInputError("Invalid tool input", details=validation_details(e))


def clamp_page(limit: Any, offset: Any, default_limit: int) -> Tuple[int, int]:
    """Clamp page size to [1, 200] and offset to >= 0; unusable values take the defaults."""
    def _as_int(value: Any, default: int) -> int:
        if value is None or isinstance(value, bool):
            return default
        try:
            number = float(value)
        except (TypeError, ValueError):
            return default
        if math.isnan(number):
            return default
        if math.isinf(number):
            return sys.maxsize if number > 0 else -sys.maxsize
        return int(number)

    page_size = min(MAX_PAGE_SIZE, max(1, _as_int(limit, default_limit)))
    start = max(0, _as_int(offset, 0))
    return page_size, start


def _tenant_id(ctx: ToolContext, data: TenantScopedInput) -> str:
    return ctx.tenant_id or data.tenant_id or ""


class ToolRegistry:
    """
    Tool catalog built once per process.

    Handlers receive a ToolContext from make_context() and look tenants up
    through it, so the registry itself holds no per-call state.
    """

    def __init__(
        self,
        config: Any,
        tenant_store: TenantStore,
        schema_cache: SchemaCache,
        client_factory: Callable[[TenantConfig], MaximoClient] = MaximoClient,
    ):
        self.config = config
        self.tenant_store = tenant_store
        self.schema_cache = schema_cache
        self.client_factory = client_factory
        self.tools: List[ToolDefinition] = self._build_catalog()
        self._by_name: Dict[str, ToolDefinition] = {t.name: t for t in self.tools}

    def get(self, name: str) -> Optional[ToolDefinition]:
        return self._by_name.get(name)

    def resolve_tenant(self, tenant_id: str) -> Tuple[TenantConfig, MaximoClient]:
        tenant = self.tenant_store.get(tenant_id) if tenant_id else None
        if tenant is None:
            raise TenantNotFoundError(tenant_id)
        return tenant, self.client_factory(tenant)

    def make_context(self, tenant_id: Optional[str] = None) -> ToolContext:
        return ToolContext(
            config=self.config,
            tenant_id=tenant_id or None,
            schema_cache=self.schema_cache,
            resolve_tenant=self.resolve_tenant,
        )

    async def call(self, name: str, params: Any, tenant_id: Optional[str] = None) -> Any:
        """Invoke a tool directly (used by the agent chat endpoint)."""
        tool = self.get(name)
        if tool is None:
            raise InvalidInputError(f"Unknown tool: {name}")
        return await tool.handler(self.make_context(tenant_id), params or {})

    # ---- catalog ----

    def _build_catalog(self) -> List[ToolDefinition]:
        return [
            ToolDefinition(
                name="mcp.listTools",
                description="List available MCP tools (capped by TOOL_CATALOG_LIMIT).",
                input_schema=_EMPTY_SCHEMA,
                handler=self._list_tools,
            ),
            ToolDefinition(
                name="tenants.list",
                description="List configured tenants (redacted).",
                input_schema=_EMPTY_SCHEMA,
                handler=self._list_tenants,
            ),
            ToolDefinition(
                name="maximo.execute_query",
                description=(
                    "Execute a safe, allowlisted OSLC query (structured filters) "
                    "against a Maximo object structure."
                ),
                input_schema=EXECUTE_QUERY_SCHEMA,
                annotations={
                    "tenantScoped": True,
                    "maximo": {
                        "readOnly": True,
                        "domainAware": False,
                        "oslc": {
                            "supportsWhere": True,
                            "supportsSelect": True,
                            "supportsOrderBy": True,
                            "supportsPaging": True,
                        },
                    },
                    "ui": {"group": "Maximo", "tags": ["query", "oslc"]},
                },
                handler=execute_query,
            ),
            ToolDefinition(
                name="maximo.execute_operation",
                description="Execute a Maximo operation (generic) with preflight/commit phases.",
                input_schema=EXECUTE_OPERATION_SCHEMA,
                annotations={
                    "tenantScoped": True,
                    "maximo": {"readOnly": False, "domainAware": True},
                    "ui": {"group": "Maximo", "tags": ["operation", "write"]},
                },
                handler=execute_operation,
            ),
            ToolDefinition(
                name="maximo.metadata.list_object_structures",
                description=(
                    "List available object structures (best-effort; uses tenant "
                    "config if set, otherwise probes /oslc/os)."
                ),
                input_schema=_TENANT_ONLY_SCHEMA,
                annotations={
                    "tenantScoped": True,
                    "maximo": {"readOnly": True},
                    "ui": {"group": "Metadata", "tags": ["schema"]},
                },
                handler=list_object_structures,
            ),
            ToolDefinition(
                name="maximo.metadata.get_object_structure",
                description=(
                    "Get inferred schema for an object structure (fields inferred "
                    "from a sample record; cached per-tenant)."
                ),
                input_schema={
                    "type": "object",
                    "additionalProperties": False,
                    "required": ["tenantId", "objectStructure"],
                    "properties": {
                        "tenantId": {"type": "string"},
                        "objectStructure": {"type": "string"},
                    },
                },
                annotations={
                    "tenantScoped": True,
                    "maximo": {"readOnly": True},
                    "ui": {"group": "Metadata", "tags": ["schema"]},
                },
                handler=get_object_structure,
            ),
            ToolDefinition(
                name="maximo.intent_to_oslc_plan",
                description=(
                    "Convert a Maximo intent to a structured OSLC query plan "
                    "(deterministic heuristic)."
                ),
                input_schema={
                    "type": "object",
                    "additionalProperties": False,
                    "required": ["tenantId", "intent"],
                    "properties": {
                        "tenantId": {"type": "string"},
                        "intent": {"type": "string"},
                    },
                },
                annotations={
                    "tenantScoped": True,
                    "maximo": {"readOnly": True},
                    "ui": {"group": "Agent", "tags": ["plan"]},
                },
                handler=intent_to_oslc_plan,
            ),
        ]

    async def _list_tools(self, ctx: ToolContext, params: Any) -> List[Dict[str, Any]]:
        limit = getattr(ctx.config, "TOOL_CATALOG_LIMIT", len(self.tools))
        return [t.describe() for t in self.tools][: max(1, limit)]

    async def _list_tenants(self, ctx: ToolContext, params: Any) -> Dict[str, Any]:
        return {"tenants": [redact_tenant(t) for t in self.tenant_store.list()]}


# ---- tenant-scoped handlers ----

async def execute_query(ctx: ToolContext, params: Any) -> Dict[str, Any]:
    """
    Run an allowlisted query against one object structure.

    Every select and filter field must appear in the discovered shape;
    validation and translation finish before the data query is sent.
    """
    data = parse_input(ExecuteQueryInput, params)
    tenant_id = _tenant_id(ctx, data)
    tenant, client = ctx.resolve_tenant(tenant_id)
    query = data.query

    for clause in query.where:
        if clause.op and clause.op not in SUPPORTED_OPS:
            raise InvalidInputError(
                f"Unsupported operator: {clause.op}",
                details={"field": clause.field, "op": clause.op},
            )

    shape = await ctx.schema_cache.get_shape(tenant_id, data.object_structure, client)
    allowed = set(shape.fields)

    select = [f for f in query.select if f]
    for field in select:
        if field != "*" and field not in allowed:
            raise FieldNotAllowedError(field)
    for clause in query.where:
        if clause.field not in allowed:
            raise FilterFieldNotAllowedError(clause.field)

    where = to_native_filter(query.where)
    if not where and tenant.oslc and tenant.oslc.where_default:
        where = tenant.oslc.where_default

    default_limit = (tenant.oslc.page_size if tenant.oslc else None) or DEFAULT_PAGE_SIZE
    page_size, start = clamp_page(query.page.limit, query.page.offset, default_limit)

    select_expr = "*" if not select or "*" in select else ",".join(select)
    result = await client.query(
        data.object_structure,
        where=where or None,
        select=select_expr,
        order_by=to_order_by(query.order_by),
        page_size=page_size,
        start=start,
    )

    count = result.count if result.count is not None else len(result.items)
    return {
        "items": result.items,
        "page": {"limit": page_size, "offset": start, "count": count},
        "shape": {"fields": list(shape.fields)},
    }


async def execute_operation(ctx: ToolContext, params: Any) -> Dict[str, Any]:
    data = parse_input(ExecuteOperationInput, params)
    _, client = ctx.resolve_tenant(_tenant_id(ctx, data))
    target = data.target.to_wire()
    payload = data.payload or {}

    if data.mode == "preflight":
        return {
            "ok": True,
            "mode": data.mode,
            "operation": data.operation,
            "target": target,
            "impact": {"note": PREFLIGHT_NOTE},
            "payloadPreview": payload,
        }

    logger.info(f"Committing {data.operation} on {target['objectStructure']}/{target['key']}")
    result = await client.execute_operation(data.operation, target, payload)
    return {"ok": True, "mode": data.mode, "result": result}


async def list_object_structures(ctx: ToolContext, params: Any) -> Dict[str, Any]:
    """Tenant allowlist, else live discovery, else the built-in list."""
    data = parse_input(TenantScopedInput, params)
    tenant, client = ctx.resolve_tenant(_tenant_id(ctx, data))

    if tenant.object_structures:
        return {"objectStructures": sorted(tenant.object_structures), "source": "tenant"}

    found = await client.list_object_structures_fallback()
    if found:
        return {"objectStructures": found, "source": "discovered"}
    return {"objectStructures": list(BUILTIN_OBJECT_STRUCTURES), "source": "builtin"}


async def get_object_structure(ctx: ToolContext, params: Any) -> Dict[str, Any]:
    data = parse_input(ObjectStructureInput, params)
    tenant_id = _tenant_id(ctx, data)
    _, client = ctx.resolve_tenant(tenant_id)
    shape = await ctx.schema_cache.get_shape(tenant_id, data.object_structure, client)
    return {
        "objectStructure": data.object_structure,
        "fields": list(shape.fields),
        "discoveredAt": shape.discovered_at,
    }


async def intent_to_oslc_plan(ctx: ToolContext, params: Any) -> Dict[str, Any]:
    data = parse_input(IntentInput, params)
    return plan_intent(data.intent, _tenant_id(ctx, data) or None)


def build_tools(config: Any, tenant_store: TenantStore, schema_cache: SchemaCache) -> ToolRegistry:
    return ToolRegistry(config, tenant_store, schema_cache)
