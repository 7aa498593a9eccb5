"""Unit tests for the Maximo tool catalog and handlers."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.adapters.maximo_client import QueryResult
from app.infra.errors import (
    FieldNotAllowedError,
    FilterFieldNotAllowedError,
    InvalidInClauseError,
    InvalidInputError,
    TenantNotFoundError,
)
from app.services.schema_cache import SchemaCache
from app.services.tenant_store import FileTenantStore
from app.services.tool_registry import ToolRegistry, build_tools, clamp_page


@pytest.fixture
def settings():
    return SimpleNamespace(TOOL_CATALOG_LIMIT=128)


@pytest.fixture
def store(tmp_path, tenant_record):
    store = FileTenantStore(str(tmp_path / "tenants.json"))
    store.upsert(tenant_record())
    return store


@pytest.fixture
def fake_client():
    client = MagicMock()
    client.query = AsyncMock(return_value=QueryResult(items=[{"id": 1, "status": "OPEN", "desc": "x"}]))
    client.execute_operation = AsyncMock(return_value={"status": "APPR"})
    client.list_object_structures_fallback = AsyncMock(return_value=[])
    return client


@pytest.fixture
def registry(settings, store, fake_client):
    def factory(tenant):
        fake_client.tenant = tenant
        return fake_client
    return ToolRegistry(settings, store, SchemaCache(), client_factory=factory)


def _data_query(client):
    """The last query call (the first is the schema probe)."""
    return client.query.await_args_list[-1]


class TestCatalog:
    """mcp.listTools and tenants.list."""

    @pytest.mark.asyncio
    async def test_list_tools_names(self, registry):
        tools = await registry.call("mcp.listTools", {})

        assert [t["name"] for t in tools] == [
            "mcp.listTools",
            "tenants.list",
            "maximo.execute_query",
            "maximo.execute_operation",
            "maximo.metadata.list_object_structures",
            "maximo.metadata.get_object_structure",
            "maximo.intent_to_oslc_plan",
        ]
        assert set(tools[2]) == {"name", "description", "inputSchema", "annotations"}
        assert tools[2]["annotations"]["maximo"]["readOnly"] is True
        assert tools[3]["annotations"]["maximo"]["readOnly"] is False

    @pytest.mark.asyncio
    async def test_list_tools_is_idempotent(self, registry):
        first = await registry.call("mcp.listTools", {})
        second = await registry.call("mcp.listTools", {})

        assert json.dumps(first, sort_keys=True) == json.dumps(second, sort_keys=True)

    @pytest.mark.asyncio
    async def test_list_tools_returns_copies(self, registry):
        tools = await registry.call("mcp.listTools", {})
        tools[2]["inputSchema"]["properties"].clear()
        tools[2]["annotations"]["maximo"]["readOnly"] = False

        again = await registry.call("mcp.listTools", {})

        assert "objectStructure" in again[2]["inputSchema"]["properties"]
        assert again[2]["annotations"]["maximo"]["readOnly"] is True

    @pytest.mark.asyncio
    async def test_list_tools_respects_limit(self, registry, settings):
        settings.TOOL_CATALOG_LIMIT = 2

        tools = await registry.call("mcp.listTools", {})

        assert [t["name"] for t in tools] == ["mcp.listTools", "tenants.list"]

    @pytest.mark.asyncio
    async def test_tenants_list_is_redacted(self, registry):
        result = await registry.call("tenants.list", {})

        assert [t["tenantId"] for t in result["tenants"]] == ["t1"]
        assert "test-api-key" not in json.dumps(result)

    def test_build_tools(self, settings, store):
        registry = build_tools(settings, store, SchemaCache())

        assert registry.get("maximo.execute_query") is not None
        assert registry.get("maximo.nope") is None


class TestExecuteQuery:
    """maximo.execute_query."""

    @pytest.mark.asyncio
    async def test_select_and_filter_within_shape(self, registry, fake_client):
        result = await registry.call("maximo.execute_query", {
            "tenantId": "t1",
            "objectStructure": "mxwo",
            "query": {
                "select": ["status"],
                "where": [{"field": "status", "op": "!=", "value": "CLOSED"}],
                "page": {"limit": 5, "offset": 0},
            },
        })

        kwargs = _data_query(fake_client).kwargs
        assert kwargs["where"] == "status != 'CLOSED'"
        assert kwargs["select"] == "status"
        assert result["shape"] == {"fields": ["desc", "id", "status"]}

    @pytest.mark.asyncio
    async def test_page_is_clamped(self, registry, fake_client):
        result = await registry.call("maximo.execute_query", {
            "tenantId": "t1",
            "objectStructure": "mxwo",
            "query": {"page": {"limit": 500, "offset": -5}},
        })

        kwargs = _data_query(fake_client).kwargs
        assert (kwargs["page_size"], kwargs["start"]) == (200, 0)
        assert result["page"]["limit"] == 200
        assert result["page"]["offset"] == 0

    @pytest.mark.asyncio
    async def test_defaults_from_tenant(self, tenant_record, store, registry, fake_client):
        store.upsert(tenant_record(oslc={"whereDefault": "siteid = 'BEDFORD'", "pageSize": 20}))

        await registry.call("maximo.execute_query", {"tenantId": "t1", "objectStructure": "mxwo", "query": {}})

        kwargs = _data_query(fake_client).kwargs
        assert kwargs["where"] == "siteid = 'BEDFORD'"
        assert kwargs["page_size"] == 20
        assert kwargs["select"] == "*"

    @pytest.mark.asyncio
    async def test_no_filter_and_no_default_omits_where(self, registry, fake_client):
        await registry.call("maximo.execute_query", {"tenantId": "t1", "objectStructure": "mxwo", "query": {}})

        kwargs = _data_query(fake_client).kwargs
        assert kwargs["where"] is None
        assert kwargs["page_size"] == 50

    @pytest.mark.asyncio
    async def test_unknown_select_field(self, registry, fake_client):
        with pytest.raises(FieldNotAllowedError) as exc_info:
            await registry.call("maximo.execute_query", {
                "tenantId": "t1",
                "objectStructure": "mxwo",
                "query": {"select": ["status", "password"]},
            })

        assert exc_info.value.details == {"field": "password"}
        assert fake_client.query.await_count == 1  # schema probe only

    @pytest.mark.asyncio
    async def test_unknown_filter_field(self, registry, fake_client):
        with pytest.raises(FilterFieldNotAllowedError):
            await registry.call("maximo.execute_query", {
                "tenantId": "t1",
                "objectStructure": "mxwo",
                "query": {"where": [{"field": "siteid", "op": "=", "value": "X"}]},
            })

        assert fake_client.query.await_count == 1

    @pytest.mark.asyncio
    async def test_in_without_list(self, registry, fake_client):
        with pytest.raises(InvalidInClauseError):
            await registry.call("maximo.execute_query", {
                "tenantId": "t1",
                "objectStructure": "mxwo",
                "query": {"where": [{"field": "status", "op": "in", "value": "OPEN"}]},
            })

        assert fake_client.query.await_count == 1

    @pytest.mark.asyncio
    async def test_unsupported_operator(self, registry, fake_client):
        with pytest.raises(InvalidInputError):
            await registry.call("maximo.execute_query", {
                "tenantId": "t1",
                "objectStructure": "mxwo",
                "query": {"where": [{"field": "status", "op": "; drop", "value": 1}]},
            })

        fake_client.query.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_resource_type_alias(self, registry, fake_client):
        await registry.call("maximo.execute_query", {"tenantId": "t1", "resourceType": "mxasset", "query": {}})

        assert _data_query(fake_client).args[0] == "mxasset"

    @pytest.mark.asyncio
    async def test_missing_object_structure(self, registry):
        with pytest.raises(InvalidInputError) as exc_info:
            await registry.call("maximo.execute_query", {"tenantId": "t1", "query": {}})

        assert exc_info.value.code == "INVALID_INPUT"

    @pytest.mark.asyncio
    async def test_unknown_tenant(self, registry, fake_client):
        with pytest.raises(TenantNotFoundError):
            await registry.call("maximo.execute_query", {"tenantId": "nope", "objectStructure": "mxwo"})

        fake_client.query.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_context_tenant_wins(self, registry, fake_client):
        with pytest.raises(TenantNotFoundError):
            await registry.call(
                "maximo.execute_query",
                {"tenantId": "t1", "objectStructure": "mxwo"},
                tenant_id="other",
            )

    @pytest.mark.asyncio
    async def test_count_prefers_remote_total(self, registry, fake_client):
        fake_client.query.side_effect = [
            QueryResult(items=[{"id": 1, "status": "OPEN"}]),
            QueryResult(items=[{"id": 1}], count=99),
        ]

        result = await registry.call("maximo.execute_query", {"tenantId": "t1", "objectStructure": "mxwo"})

        assert result["page"]["count"] == 99


class TestExecuteQueryEndToEnd:
    """Real client against a patched HTTP layer."""

    @pytest.mark.asyncio
    async def test_asset_scenario(self, settings, store, http_client, make_response):
        registry = build_tools(settings, store, SchemaCache())
        records = [
            {"assetnum": "A1", "status": "OPERATING"},
            {"assetnum": "A2", "status": "OPERATING"},
            {"assetnum": "A3", "status": "OPERATING"},
        ]
        http_client.request.side_effect = [
            make_response(200, {"member": [{"assetnum": "A0", "status": "OPERATING"}]}),
            make_response(200, {"member": records}),
        ]

        result = await registry.call("maximo.execute_query", {
            "tenantId": "t1",
            "objectStructure": "asset",
            "query": {
                "select": [],
                "where": [{"field": "status", "op": "=", "value": "OPERATING"}],
                "page": {"limit": 10, "offset": 0},
            },
        })

        assert result == {
            "items": records,
            "page": {"limit": 10, "offset": 0, "count": 3},
            "shape": {"fields": ["assetnum", "status"]},
        }
        probe_params = http_client.request.await_args_list[0].kwargs["params"]
        assert "oslc.where" not in probe_params
        params = http_client.request.await_args_list[1].kwargs["params"]
        assert params["oslc.where"] == "status = 'OPERATING'"
        assert params["oslc.pageSize"] == "10"
        assert params["oslc.startIndex"] == "1"


class TestExecuteOperation:
    """maximo.execute_operation."""

    @pytest.mark.asyncio
    async def test_preflight_makes_no_remote_call(self, registry, fake_client):
        result = await registry.call("maximo.execute_operation", {
            "tenantId": "t1",
            "operation": "changeStatus",
            "target": {"objectStructure": "mxwo", "key": "_abc"},
            "payload": {"status": "APPR"},
        })

        assert result["ok"] is True
        assert result["mode"] == "preflight"
        assert result["target"] == {"objectStructure": "mxwo", "key": "_abc"}
        assert result["payloadPreview"] == {"status": "APPR"}
        assert "note" in result["impact"]
        fake_client.execute_operation.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_commit(self, registry, fake_client):
        result = await registry.call("maximo.execute_operation", {
            "tenantId": "t1",
            "operation": "changeStatus",
            "target": {"objectStructure": "mxwo", "key": "_abc"},
            "payload": {"status": "APPR"},
            "mode": "commit",
        })

        assert result == {"ok": True, "mode": "commit", "result": {"status": "APPR"}}
        fake_client.execute_operation.assert_awaited_once_with(
            "changeStatus", {"objectStructure": "mxwo", "key": "_abc"}, {"status": "APPR"}
        )

    @pytest.mark.asyncio
    async def test_unknown_mode(self, registry, fake_client):
        with pytest.raises(InvalidInputError):
            await registry.call("maximo.execute_operation", {
                "tenantId": "t1",
                "operation": "changeStatus",
                "target": {"objectStructure": "mxwo", "key": "_abc"},
                "mode": "yolo",
            })

        fake_client.execute_operation.assert_not_awaited()


class TestMetadata:
    """Object structure listing and schema lookup."""

    @pytest.mark.asyncio
    async def test_tenant_allowlist_sorted(self, tenant_record, store, registry, fake_client):
        store.upsert(tenant_record(objectStructures=["mxwo", "mxasset"]))

        result = await registry.call("maximo.metadata.list_object_structures", {"tenantId": "t1"})

        assert result == {"objectStructures": ["mxasset", "mxwo"], "source": "tenant"}
        fake_client.list_object_structures_fallback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_discovered(self, registry, fake_client):
        fake_client.list_object_structures_fallback.return_value = ["MXAPIWO", "MXWO"]

        result = await registry.call("maximo.metadata.list_object_structures", {"tenantId": "t1"})

        assert result == {"objectStructures": ["MXAPIWO", "MXWO"], "source": "discovered"}

    @pytest.mark.asyncio
    async def test_builtin_fallback(self, registry):
        result = await registry.call("maximo.metadata.list_object_structures", {"tenantId": "t1"})

        assert result["source"] == "builtin"
        assert result["objectStructures"][0] == "mxwo"

    @pytest.mark.asyncio
    async def test_get_object_structure(self, registry):
        result = await registry.call(
            "maximo.metadata.get_object_structure", {"tenantId": "t1", "objectStructure": "mxwo"}
        )

        assert result["objectStructure"] == "mxwo"
        assert result["fields"] == ["desc", "id", "status"]
        assert isinstance(result["discoveredAt"], int)

    @pytest.mark.asyncio
    async def test_returned_fields_do_not_alias_cache(self, registry):
        params = {"tenantId": "t1", "objectStructure": "mxwo"}
        described = await registry.call("maximo.metadata.get_object_structure", params)
        queried = await registry.call("maximo.execute_query", params)

        described["fields"].append("injected")
        queried["shape"]["fields"].clear()

        assert registry.schema_cache.peek("t1", "mxwo").fields == ["desc", "id", "status"]


class TestIntentPlan:
    """maximo.intent_to_oslc_plan."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("intent, expected", [
        ("show open work orders", "mxwo"),
        ("list pumps in the asset register", "mxasset"),
        ("which locations are in Bedford", "mxlocation"),
        ("inventory below reorder point", "mxinv"),
        ("new service requests today", "mxsr"),
        ("open SRs", "mxsr"),
        ("job plans for pumps", "mxjobplan"),
        ("preventive maintenance due", "mxpm"),
        ("overdue PM", "mxpm"),
    ])
    async def test_keyword_mapping(self, registry, intent, expected):
        plan = await registry.call("maximo.intent_to_oslc_plan", {"tenantId": "t1", "intent": intent})

        assert plan["objectStructure"] == expected
        assert plan["select"] == ["*"]
        assert plan["where"] == [{"field": "status", "op": "notnull"}]
        assert plan["page"] == {"limit": 25, "offset": 0}


class TestClampPage:
    """Page bound normalization."""

    def test_bounds(self):
        assert clamp_page(500, -5, 50) == (200, 0)
        assert clamp_page(0, 3, 50) == (1, 3)
        assert clamp_page(None, None, 20) == (20, 0)

    def test_non_numeric_takes_defaults(self):
        assert clamp_page("lots", "later", 50) == (50, 0)
        assert clamp_page("25", "10", 50) == (25, 10)

    def test_infinite_json_numbers_are_clamped(self):
        page = json.loads('{"limit": 1e999, "offset": -1e999}')

        assert clamp_page(page["limit"], page["offset"], 50) == (200, 0)
        assert clamp_page(float("-inf"), float("inf"), 50)[0] == 1
        assert clamp_page(float("nan"), float("nan"), 30) == (30, 0)

    @pytest.mark.asyncio
    async def test_infinite_limit_reaches_upstream_clamped(self, registry, fake_client):
        result = await registry.call("maximo.execute_query", {
            "tenantId": "t1",
            "objectStructure": "mxwo",
            "query": json.loads('{"page": {"limit": 1e999, "offset": 1e999}}'),
        })

        kwargs = _data_query(fake_client).kwargs
        assert kwargs["page_size"] == 200
        assert result["page"]["limit"] == 200
