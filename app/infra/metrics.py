"""Prometheus metrics export."""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Tool metrics
tool_calls_total = Counter(
    "mcp_tool_calls_total",
    "Total JSON-RPC tool calls",
    ["tool_name", "status"],  # status: success | app_error | error | not_found
)

tool_call_duration = Histogram(
    "mcp_tool_call_duration_seconds",
    "Tool call duration in seconds",
    ["tool_name"],
)

# Upstream (Maximo) metrics
upstream_requests_total = Counter(
    "maximo_upstream_requests_total",
    "Total requests issued to Maximo and OAuth token endpoints",
    ["kind", "status_class"],  # kind: query | operation | discovery | token
)

upstream_request_duration = Histogram(
    "maximo_upstream_request_duration_seconds",
    "Upstream request duration in seconds",
    ["kind"],
)

# Schema cache metrics
schema_cache_lookups_total = Counter(
    "schema_cache_lookups_total",
    "Schema cache lookups",
    ["result"],  # hit | miss
)


def status_class(status_code: int) -> str:
    """Collapse a status code into 2xx/4xx/5xx for label cardinality."""
    return f"{status_code // 100}xx"


def get_metrics_response() -> Response:
    """Get Prometheus metrics as HTTP response."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
