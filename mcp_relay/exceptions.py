"""
Relay Exception Hierarchy

Centralized exception classes for structured error handling across the codebase.
All relay-specific exceptions inherit from RelayError.

Usage:
    from mcp_relay.exceptions import ChannelUnavailableError, RequestTimeoutError

    try:
        response = await bridge.submit(request)
    except RequestTimeoutError as e:
        logger.warning(f"Request failed: {e}")
"""


class RelayError(Exception):
    """Base exception for all relay errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} ({self.details})"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(RelayError):
    """Error in relay configuration."""

    pass


# =============================================================================
# Channel Errors
# =============================================================================


class ChannelError(RelayError):
    """Base class for engine channel errors."""

    pass


class ChannelUnavailableError(ChannelError):
    """No engine process, or its stdin is closed."""

    pass


class EngineSpawnError(ChannelError):
    """Engine or bridge process could not be started."""

    def __init__(self, message: str, command: list[str] | None = None):
        details = {"command": " ".join(command)} if command else {}
        super().__init__(message, details)
        self.command = command


# =============================================================================
# Request Errors
# =============================================================================


class RequestError(RelayError):
    """Base class for errors scoped to a single JSON-RPC request."""

    pass


class RequestTimeoutError(RequestError):
    """No response arrived before the request deadline."""

    def __init__(self, request_id, timeout: float):
        super().__init__("Request timeout", {"id": request_id, "timeout": timeout})
        self.request_id = request_id
        self.timeout = timeout


class InvalidRequestError(RequestError):
    """Caller sent something that is not a valid JSON-RPC request."""

    def __init__(self, message: str, code: int, request_id=None):
        super().__init__(message)
        self.code = code
        self.request_id = request_id


# =============================================================================
# HTTP/Client Errors
# =============================================================================


class ClientError(RelayError):
    """Base class for HTTP client errors."""

    pass


class HTTPRequestError(ClientError):
    """HTTP request failed."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_text: str | None = None,
    ):
        details = {}
        if status_code is not None:
            details["status_code"] = status_code
        if response_text:
            details["response_text"] = response_text[:200]
        super().__init__(message, details)
        self.status_code = status_code
        self.response_text = response_text


class HTTPConnectionError(ClientError):
    """Failed to connect to HTTP endpoint."""

    pass


class HTTPTimeoutError(ClientError):
    """HTTP request timed out."""

    pass
