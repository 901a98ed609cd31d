"""
HTTP Client Utilities

Synchronous `requests` helpers for talking to a running bridge from the
command line, with standardized error handling.

Usage:
    from mcp_relay.utils.http_client import get_health, wait_for_bridge

    if wait_for_bridge("http://localhost:9000", max_attempts=10):
        print(get_health("http://localhost:9000"))
"""

import time
from typing import Any

import requests

from mcp_relay.configs import get_logger
from mcp_relay.configs.constants import get_timeout
from mcp_relay.exceptions import (
    ClientError,
    HTTPConnectionError,
    HTTPRequestError,
    HTTPTimeoutError,
)

logger = get_logger("http_client")

# Default timeout for HTTP requests (seconds)
DEFAULT_TIMEOUT = get_timeout("http_default", 10)


def http_get(
    url: str,
    timeout: float = DEFAULT_TIMEOUT,
    raise_for_status: bool = True,
) -> requests.Response:
    """
    Make a GET request with standardized error handling.

    Raises:
        HTTPConnectionError: Connection failed
        HTTPTimeoutError: Request timed out
        HTTPRequestError: Bad status code (if raise_for_status=True)
    """
    try:
        response = requests.get(url, timeout=timeout)
        if raise_for_status:
            response.raise_for_status()
        return response
    except requests.exceptions.ConnectionError as e:
        raise HTTPConnectionError(f"Connection failed: {url}") from e
    except requests.exceptions.Timeout as e:
        raise HTTPTimeoutError(f"Request timed out: {url}") from e
    except requests.exceptions.HTTPError as e:
        raise HTTPRequestError(
            f"HTTP {e.response.status_code}: {url}",
            status_code=e.response.status_code,
            response_text=e.response.text[:500] if e.response.text else None,
        ) from e


def http_json_get(url: str, timeout: float = DEFAULT_TIMEOUT) -> dict[str, Any]:
    """GET request that returns parsed JSON."""
    response = http_get(url, timeout=timeout)
    try:
        return response.json()
    except ValueError as e:
        raise HTTPRequestError(f"Invalid JSON response from {url}") from e


def get_health(base_url: str) -> dict[str, Any]:
    """Fetch GET /health from a bridge."""
    return http_json_get(
        f"{base_url.rstrip('/')}/health",
        timeout=get_timeout("http_health_check", 2),
    )


def wait_for_bridge(base_url: str, max_attempts: int = 30, delay: float = 0.5) -> bool:
    """Wait until the bridge reports its MCP server ready."""
    logger.info(f"Waiting for bridge at {base_url}...")

    for _ in range(max_attempts):
        try:
            if get_health(base_url).get("mcpServerReady"):
                logger.info("Bridge is ready")
                return True
        except ClientError as e:
            logger.debug(f"Bridge not reachable yet: {e}")

        time.sleep(delay)

    logger.error("Bridge did not become ready")
    return False
