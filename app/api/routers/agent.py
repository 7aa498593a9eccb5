"""Deterministic agent chat API router."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.api.models import AgentChatRequest, AgentChatResponse
from app.api.utils import get_registry
from app.services.agent_chat import agent_chat
from app.services.jsonrpc_dispatcher import unexpected_error_message
from app.services.tool_registry import ToolRegistry

logger = logging.getLogger(__name__)

router = APIRouter()


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"ok": False, "code": code, "message": message, "details": None, "retryable": False},
    )


@router.post("/api/agent/chat", tags=["Agent"], response_model=AgentChatResponse)
async def chat(request: AgentChatRequest, registry: ToolRegistry = Depends(get_registry)):
    """
    Plan a query from a chat message and run it.

    **Example Request:**
    ```json
    {"tenantId": "t1", "message": "show me assets"}
    ```
    """
    tenant_id = request.tenant_id.strip()
    message = request.message.strip()
    if not tenant_id or not message:
        return _error(400, "INVALID_INPUT", "tenantId and message are required")

    try:
        return await agent_chat(registry, tenant_id, message)
    except Exception as e:
        logger.error(f"Agent chat failed for tenant {tenant_id}", exc_info=True)
        return _error(500, "AGENT_ERROR", unexpected_error_message(e))
