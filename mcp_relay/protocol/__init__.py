"""
JSON-RPC wire helpers: newline framing and request validation.
"""

from mcp_relay.protocol.framing import LineFramer, decode_line, encode_message
from mcp_relay.protocol.jsonrpc import (
    build_error,
    build_initialize_request,
    has_id,
    validate_request,
)

__all__ = [
    "LineFramer",
    "decode_line",
    "encode_message",
    "build_error",
    "build_initialize_request",
    "has_id",
    "validate_request",
]
