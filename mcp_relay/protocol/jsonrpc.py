"""
JSON-RPC 2.0 envelopes.

Validation of caller requests, error envelopes, and the initialize
handshake sent to the engine. Method semantics are left to the engine.
"""

from typing import Any

from mcp_relay import __version__
from mcp_relay.configs.constants import (
    CLIENT_NAME,
    INIT_REQUEST_ID,
    INVALID_REQUEST,
    JSONRPC_VERSION,
    PROTOCOL_VERSION,
)
from mcp_relay.exceptions import InvalidRequestError


def has_id(message: dict[str, Any]) -> bool:
    """True if the message carries a usable id (null and "" do not count)."""
    request_id = message.get("id")
    return request_id is not None and request_id != ""


def caller_id(body: Any) -> Any:
    """Id to echo back in an error envelope, or None."""
    if isinstance(body, dict) and has_id(body):
        request_id = body["id"]
        if isinstance(request_id, (str, int, float)) and not isinstance(request_id, bool):
            return request_id
    return None


def validate_request(body: Any) -> dict[str, Any]:
    """
    Check that a caller body is a JSON-RPC 2.0 request.

    Args:
        body: Decoded HTTP request body

    Returns:
        The body, unchanged

    Raises:
        InvalidRequestError: Not an object, wrong/missing "jsonrpc", or no method
    """
    if not isinstance(body, dict):
        raise InvalidRequestError(
            "Invalid Request: body must be a JSON object",
            code=INVALID_REQUEST,
        )

    if body.get("jsonrpc") != JSONRPC_VERSION:
        raise InvalidRequestError(
            f'Invalid Request: jsonrpc must be "{JSONRPC_VERSION}"',
            code=INVALID_REQUEST,
            request_id=caller_id(body),
        )

    method = body.get("method")
    if not isinstance(method, str) or not method:
        raise InvalidRequestError(
            "Invalid Request: method is required",
            code=INVALID_REQUEST,
            request_id=caller_id(body),
        )

    return body


def build_error(code: int, message: str, request_id: Any = None) -> dict[str, Any]:
    """Build a JSON-RPC error response."""
    return {
        "jsonrpc": JSONRPC_VERSION,
        "error": {"code": code, "message": message},
        "id": request_id,
    }


def build_initialize_request() -> dict[str, Any]:
    """Build the initialize handshake sent to a freshly spawned engine."""
    return {
        "jsonrpc": JSONRPC_VERSION,
        "method": "initialize",
        "params": {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {},
            "clientInfo": {
                "name": CLIENT_NAME,
                "version": __version__,
            },
        },
        "id": INIT_REQUEST_ID,
    }
