"""
MCP Protocol Endpoint

POST / accepts one JSON-RPC 2.0 request, relays it to the MCP server
over stdio, and returns the server's response verbatim.

Status codes:
- 200: the server's JSON-RPC response (which may itself carry an error)
- 400: body is not JSON (-32700) or not a JSON-RPC request (-32600)
- 500: timeout, server unavailable, or unexpected failure (-32603)
"""

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from mcp_relay.bridge import Bridge
from mcp_relay.configs import get_logger
from mcp_relay.configs.constants import INTERNAL_ERROR, PARSE_ERROR
from mcp_relay.exceptions import InvalidRequestError, RelayError
from mcp_relay.protocol import build_error, validate_request
from mcp_relay.protocol.jsonrpc import caller_id

logger = get_logger("http.mcp")

router = APIRouter()


def get_bridge(request: Request) -> Bridge:
    """The Bridge attached to the application at startup."""
    return request.app.state.bridge


def _error_response(status_code: int, code: int, message: str, request_id: Any = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=build_error(code, message, request_id))


@router.post("/")
async def relay_request(request: Request, bridge: Bridge = Depends(get_bridge)) -> JSONResponse:
    """Relay a JSON-RPC request to the MCP server."""
    try:
        body = await request.json()
    except ValueError as e:
        logger.warning(f"Rejected request with unparseable body: {e}")
        return _error_response(400, PARSE_ERROR, "Parse error: body is not valid JSON")

    try:
        validate_request(body)
    except InvalidRequestError as e:
        logger.warning(f"Rejected request: {e.message}")
        return _error_response(400, e.code, e.message, e.request_id)

    logger.debug(f"Relaying {body['method']} (id={body.get('id')})")
    try:
        response = await bridge.submit(body)
    except RelayError as e:
        logger.error(f"Error processing {body['method']}: {e}")
        return _error_response(500, INTERNAL_ERROR, e.message, caller_id(body))
    except Exception as e:
        logger.exception(f"Unexpected error processing {body['method']}")
        return _error_response(500, INTERNAL_ERROR, str(e) or "Internal error", caller_id(body))

    return JSONResponse(content=response)
