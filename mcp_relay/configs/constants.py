"""
Relay Constants

Protocol literals, JSON-RPC error codes, and timeout configuration.
"""

# --- Protocol ---

JSONRPC_VERSION = "2.0"

# MCP protocol revision announced in the initialize handshake
PROTOCOL_VERSION = "2024-11-05"

# Id reserved for the initialize handshake; never handed to callers
INIT_REQUEST_ID = "init"

CLIENT_NAME = "mcp-relay"

# Stderr text the engine prints once it is serving on stdio
DEFAULT_READY_MARKER = "running on stdio"

# --- JSON-RPC Error Codes ---

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
INTERNAL_ERROR = -32603

# --- Timeout Configuration ---
# Centralized timeout values (in seconds)

TIMEOUTS = {
    # Bridge
    "request": 30,  # Per-request wait for an engine response
    "engine_restart": 2,  # Fixed delay before respawning the engine
    "engine_shutdown": 5,  # Wait after SIGTERM before SIGKILL
    # Supervisor
    "supervisor_restart": 2,  # Base delay, multiplied by the attempt number
    "supervisor_grace": 5,  # Uptime after which attempts reset
    # HTTP client
    "http_default": 10,
    "http_health_check": 2,
}


def get_timeout(key: str, default: int | float | None = None) -> int | float:
    """
    Get a timeout value by key.

    Args:
        key: Timeout key from TIMEOUTS dict
        default: Default value if key not found

    Returns:
        Timeout value in seconds
    """
    if default is None:
        default = TIMEOUTS.get("http_default", 10)
    return TIMEOUTS.get(key, default)
