"""Dependency helpers giving routers access to the application state."""

from fastapi import Request

from app.services.jsonrpc_dispatcher import JsonRpcDispatcher
from app.services.schema_cache import SchemaCache
from app.services.tenant_store import TenantStore
from app.services.tool_registry import ToolRegistry


def get_tenant_store(request: Request) -> TenantStore:
    return request.app.state.tenant_store


def get_schema_cache(request: Request) -> SchemaCache:
    return request.app.state.schema_cache


def get_registry(request: Request) -> ToolRegistry:
    return request.app.state.registry


def get_dispatcher(request: Request) -> JsonRpcDispatcher:
    return request.app.state.dispatcher
