"""Tool-first chat: plan a query from the message, run it, summarize."""

import logging
from typing import Any, Dict, List

from app.services.tool_registry import ToolRegistry

logger = logging.getLogger(__name__)

PLAN_TOOL = "maximo.intent_to_oslc_plan"
QUERY_TOOL = "maximo.execute_query"


async def agent_chat(registry: ToolRegistry, tenant_id: str, message: str) -> Dict[str, Any]:
    """
    Answer a chat message with a deterministic plan plus one query.

    Args:
        registry: Tool registry
        tenant_id: Tenant to query
        message: Free-text user message

    Returns:
        {answer, trace, data: {plan, result}}
    """
    trace: List[Dict[str, Any]] = []

    trace.append({"type": "tool_selected", "toolName": PLAN_TOOL, "reason": "intent_to_oslc_plan"})
    plan = await registry.call(PLAN_TOOL, {"tenantId": tenant_id, "intent": message}, tenant_id)

    trace.append({"type": "tool_selected", "toolName": QUERY_TOOL, "reason": "execute_query"})
    result = await registry.call(
        QUERY_TOOL,
        {
            "tenantId": tenant_id,
            "objectStructure": plan["objectStructure"],
            "query": {
                "select": plan.get("select") or ["*"],
                "where": plan.get("where") or [],
                "orderBy": plan.get("orderBy") or [],
                "page": plan.get("page") or {"limit": 25, "offset": 0},
            },
        },
        tenant_id,
    )

    count = len(result.get("items") or [])
    trace.append({"type": "tool_result", "method": QUERY_TOOL, "ok": True, "preview": f"items={count}"})
    logger.info(f"Agent chat queried {plan['objectStructure']} for tenant {tenant_id}: {count} item(s)")

    answer = (
        f"I queried **{plan['objectStructure']}** for tenant **{tenant_id}** and retrieved "
        f"**{count}** record(s). Use the tool trace to review the exact query plan and results."
    )
    return {"answer": answer, "trace": trace, "data": {"plan": plan, "result": result}}
