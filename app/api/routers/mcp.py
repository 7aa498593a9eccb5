"""JSON-RPC endpoint for MCP tool calls."""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.api.utils import get_dispatcher
from app.services.jsonrpc_dispatcher import INVALID_REQUEST, JsonRpcDispatcher, rpc_error

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/mcp", tags=["MCP"])
@router.post("/mcp/", tags=["MCP"], include_in_schema=False)
async def mcp_jsonrpc(request: Request, dispatcher: JsonRpcDispatcher = Depends(get_dispatcher)):
    """
    JSON-RPC 2.0 tool dispatch.

    The tenant is taken from the tenant header, then `params.tenantId`,
    then the `tenantId` query parameter.

    **Example Request:**
    ```json
    {"jsonrpc": "2.0", "id": 1, "method": "mcp.listTools", "params": {}}
    ```
    """
    try:
        body = await request.json()
    except ValueError:
        logger.info("Rejected JSON-RPC request with unparseable body")
        return JSONResponse(status_code=400, content=rpc_error(None, INVALID_REQUEST, "Invalid Request"))

    status_code, envelope = await dispatcher.dispatch(body, request.headers, request.query_params)
    return JSONResponse(status_code=status_code, content=envelope)
