"""JSON-RPC 2.0 envelope handling and tool dispatch."""

import logging
import time
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from app.infra.errors import AppError
from app.infra.metrics import tool_call_duration, tool_calls_total
from app.services.tool_registry import ToolRegistry

logger = logging.getLogger(__name__)

JsonRpcId = Union[str, int, float, None]

INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
SERVER_ERROR = -32000

# Compared against the lower-cased exception text
HTML_MARKERS = ("<!doctype", "<html")
HTML_ERROR_MESSAGE = (
    "Upstream returned HTML where JSON was expected (possible auth/TLS/route issue). "
    "Check server logs for upstream status/content-type."
)


def parse_jsonrpc(body: Any) -> Optional[Dict[str, Any]]:
    """Return the envelope when it is a valid JSON-RPC 2.0 request, else None."""
    if not isinstance(body, dict):
        return None
    if body.get("jsonrpc") != "2.0" or not isinstance(body.get("method"), str) or "id" not in body:
        return None
    return body


def rpc_ok(rpc_id: JsonRpcId, result: Any) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": rpc_id, "result": result}


def rpc_error(rpc_id: JsonRpcId, code: int, message: str, data: Any = None) -> Dict[str, Any]:
    error: Dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": "2.0", "id": rpc_id, "error": error}


def unexpected_error_message(exc: BaseException) -> str:
    """str(exc), replaced by a diagnostic hint when it looks like an HTML body leaked through."""
    message = str(exc)
    lowered = message.lower()
    if any(marker in lowered for marker in HTML_MARKERS):
        return HTML_ERROR_MESSAGE
    return message


def resolve_tenant_id(
    headers: Mapping[str, str],
    params: Any,
    query_params: Mapping[str, str],
    header_name: str,
) -> Optional[str]:
    """Tenant id for a call: header, then params.tenantId, then ?tenantId=. First non-empty wins."""
    candidates = [headers.get(header_name)]
    if isinstance(params, dict):
        candidates.append(params.get("tenantId"))
    candidates.append(query_params.get("tenantId"))

    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return None


class JsonRpcDispatcher:
    """Maps JSON-RPC requests onto registry tools and tool outcomes onto envelopes."""

    def __init__(self, registry: ToolRegistry, tenant_header: str = "x-tenant-id"):
        self.registry = registry
        self.tenant_header = tenant_header

    async def dispatch(
        self,
        body: Any,
        headers: Mapping[str, str],
        query_params: Mapping[str, str],
    ) -> Tuple[int, Dict[str, Any]]:
        """
        Handle one request body.

        Returns:
            (http_status, envelope): 200 result, 400 invalid request or
            application error, 404 unknown method, 500 unexpected failure
        """
        rpc = parse_jsonrpc(body)
        if rpc is None:
            return 400, rpc_error(None, INVALID_REQUEST, "Invalid Request")

        rpc_id = rpc.get("id")
        method = rpc["method"]
        params = rpc.get("params") or {}

        tool = self.registry.get(method)
        if tool is None:
            tool_calls_total.labels(tool_name="unknown", status="not_found").inc()
            logger.info(f"JSON-RPC method not found: {method}")
            return 404, rpc_error(rpc_id, METHOD_NOT_FOUND, "Method not found")

        tenant_id = resolve_tenant_id(headers, params, query_params, self.tenant_header)
        ctx = self.registry.make_context(tenant_id)

        start_time = time.time()
        try:
            result = await tool.handler(ctx, params)
        except AppError as e:
            tool_calls_total.labels(tool_name=method, status="app_error").inc()
            logger.warning(
                f"Tool {method} failed: {e.code} {e.message}",
                extra={"tenant_id": tenant_id, "error_code": e.code},
            )
            return 400, rpc_error(rpc_id, SERVER_ERROR, e.message or "Request failed", e.to_dict())
        except Exception as e:
            tool_calls_total.labels(tool_name=method, status="error").inc()
            logger.error(f"Tool {method} raised unexpectedly", exc_info=True, extra={"tenant_id": tenant_id})
            return 500, rpc_error(rpc_id, SERVER_ERROR, unexpected_error_message(e))
        finally:
            tool_call_duration.labels(tool_name=method).observe(time.time() - start_time)

        tool_calls_total.labels(tool_name=method, status="success").inc()
        logger.info(f"Tool {method} ok", extra={"tenant_id": tenant_id})
        return 200, rpc_ok(rpc_id, result)
