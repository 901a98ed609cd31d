"""
Relay Logging Configuration

The supervisor and the bridge it runs are separate processes that share
one log file, so every line is tagged with the role of the process that
wrote it:

    2026-10-19 12:00:00 INFO  bridge [relay.bridge.channel] MCP server ready

Configured from environment variables:
- RELAY_DEBUG: Enable debug logging (default: false)
- RELAY_LOG_FILE: Log file path (default: $RELAY_DATA_PATH/relay.log)

The supervisor relays its child's stdout/stderr to CHILD_LOGGER. Those
lines were already formatted (and written to the shared file) by the
child, so CHILD_LOGGER echoes them verbatim to stderr and nowhere else.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

from mcp_relay.configs.paths import get_data_path

ROOT_LOGGER = "relay"
CHILD_LOGGER = "relay.supervisor.child"


def _log_format(role: str) -> str:
    return f"%(asctime)s %(levelname)-5s {role} [%(name)s] %(message)s"


def setup_logging(
    debug: Optional[bool] = None,
    log_file: Optional[str] = None,
    role: str = "relay",
) -> logging.Logger:
    """
    Configure logging for one relay process.

    Args:
        debug: Enable debug level. Defaults to RELAY_DEBUG env var.
        log_file: Log file path. Defaults to RELAY_LOG_FILE env var,
                  or $RELAY_DATA_PATH/relay.log if not set.
        role: Process role shown on every line ("supervisor", "bridge", ...)

    Returns:
        Root logger for the relay
    """
    if debug is None:
        debug = os.environ.get("RELAY_DEBUG", "").lower() in ("true", "1", "yes")
    if log_file is None:
        log_file = os.environ.get("RELAY_LOG_FILE") or str(get_data_path() / "relay.log")

    level = logging.DEBUG if debug else logging.INFO
    formatter = logging.Formatter(_log_format(role.replace("%", "%%")), datefmt="%Y-%m-%d %H:%M:%S")

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.handlers.clear()

    # With a log file, stderr is kept to problems
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    stderr_handler.setLevel(logging.WARNING if log_file else level)
    logger.addHandler(stderr_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        logger.addHandler(file_handler)

    _setup_child_logger()

    if log_file:
        logger.info(f"Logging to file: {log_file}")
    return logger


def _setup_child_logger() -> None:
    child = logging.getLogger(CHILD_LOGGER)
    child.handlers.clear()
    child.propagate = False

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    child.addHandler(handler)


def get_logger(component: str) -> logging.Logger:
    """
    Get a logger for a specific component.

    Args:
        component: Component name (e.g., "bridge", "supervisor", "http")

    Returns:
        Logger instance for the component
    """
    return logging.getLogger(f"{ROOT_LOGGER}.{component}")
