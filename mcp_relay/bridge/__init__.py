"""
HTTP-to-stdio Bridge

Relays JSON-RPC requests to a line-delimited stdio MCP server, matching
responses to callers by id and holding requests until the server is ready.
"""

from mcp_relay.bridge.bridge import Bridge
from mcp_relay.bridge.channel import EngineChannel
from mcp_relay.bridge.ids import RequestIdGenerator
from mcp_relay.bridge.pending import PendingRequest, PendingTable
from mcp_relay.bridge.queue import QueuedRequest, RequestQueue

__all__ = [
    "Bridge",
    "EngineChannel",
    "RequestIdGenerator",
    "PendingRequest",
    "PendingTable",
    "QueuedRequest",
    "RequestQueue",
]
