"""
Relay Runtime Configuration

Defaults and configuration merging logic.
Combines defaults, YAML config, and environment variables, and exposes
typed settings for the bridge and the supervisor.
"""

import copy
import os
import shlex
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from mcp_relay.configs.constants import DEFAULT_READY_MARKER, get_timeout
from mcp_relay.configs.yaml_config import load_yaml_config
from mcp_relay.exceptions import ConfigurationError

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

# --- Default Runtime Configuration ---

DEFAULT_CONFIG = {
    "bridge": {
        "host": "0.0.0.0",
        "port": 9000,
        "engine_command": ["node", "index.js"],
        "ready_marker": DEFAULT_READY_MARKER,
        "request_timeout": get_timeout("request"),
        "restart_delay": get_timeout("engine_restart"),
        "shutdown_timeout": get_timeout("engine_shutdown"),
        "cors_origins": ["*"],
    },
    "supervisor": {
        "command": [sys.executable, str(PROJECT_ROOT / "entrypoint.py"), "bridge"],
        "max_restart_attempts": 5,
        "restart_delay": get_timeout("supervisor_restart"),
        "grace_period": get_timeout("supervisor_grace"),
    },
}

# (section, key, env var); command values are shell-split
ENV_OVERRIDES = [
    ("bridge", "host", "RELAY_HTTP_HOST"),
    ("bridge", "port", "RELAY_HTTP_PORT"),
    ("bridge", "engine_command", "RELAY_ENGINE_COMMAND"),
    ("bridge", "ready_marker", "RELAY_READY_MARKER"),
    ("bridge", "request_timeout", "RELAY_REQUEST_TIMEOUT"),
    ("bridge", "restart_delay", "RELAY_ENGINE_RESTART_DELAY"),
    ("supervisor", "command", "RELAY_BRIDGE_COMMAND"),
    ("supervisor", "max_restart_attempts", "RELAY_MAX_RESTART_ATTEMPTS"),
    ("supervisor", "restart_delay", "RELAY_RESTART_DELAY"),
    ("supervisor", "grace_period", "RELAY_GRACE_PERIOD"),
]

_COMMAND_KEYS = ("engine_command", "command")


def get_full_config() -> dict:
    """
    Get full configuration merged from defaults, YAML, and environment.

    Priority (highest wins):
    1. Environment variables
    2. YAML config file
    3. DEFAULT_CONFIG

    Returns:
        Merged configuration dictionary
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    yaml_config = load_yaml_config()
    for section, values in config.items():
        overrides = yaml_config.get(section)
        if not isinstance(overrides, dict):
            continue
        for key, value in overrides.items():
            if key in values:
                values[key] = value

    for section, key, env_var in ENV_OVERRIDES:
        value = os.environ.get(env_var)
        if not value:
            continue
        if key in _COMMAND_KEYS:
            config[section][key] = shlex.split(value)
        else:
            config[section][key] = value

    return config


def _as_command(value: Any, name: str) -> list[str]:
    if isinstance(value, str):
        value = shlex.split(value)
    if not isinstance(value, list) or not value or not all(isinstance(v, str) for v in value):
        raise ConfigurationError(f"{name} must be a non-empty command", {"value": value})
    return value


def _as_number(value: Any, name: str, cast=float, minimum: float = 0):
    try:
        number = cast(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number", {"value": value})
    if number < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}", {"value": value})
    return number


@dataclass
class BridgeSettings:
    """Settings for the HTTP bridge and its engine subprocess."""

    engine_command: list[str]
    host: str = "0.0.0.0"
    port: int = 9000
    ready_marker: str = DEFAULT_READY_MARKER
    request_timeout: float = 30.0
    restart_delay: float = 2.0
    shutdown_timeout: float = 5.0
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_config(cls, config: dict | None = None) -> "BridgeSettings":
        section = (config or get_full_config())["bridge"]
        origins = section["cors_origins"]
        if isinstance(origins, str):
            origins = [o.strip() for o in origins.split(",") if o.strip()]
        return cls(
            engine_command=_as_command(section["engine_command"], "bridge.engine_command"),
            host=str(section["host"]),
            port=_as_number(section["port"], "bridge.port", cast=int, minimum=1),
            ready_marker=str(section["ready_marker"]),
            request_timeout=_as_number(section["request_timeout"], "bridge.request_timeout"),
            restart_delay=_as_number(section["restart_delay"], "bridge.restart_delay"),
            shutdown_timeout=_as_number(section["shutdown_timeout"], "bridge.shutdown_timeout"),
            cors_origins=list(origins),
        )


@dataclass
class SupervisorSettings:
    """Settings for the supervisor that keeps the bridge process alive."""

    command: list[str]
    max_restart_attempts: int = 5
    restart_delay: float = 2.0
    grace_period: float = 5.0

    @classmethod
    def from_config(cls, config: dict | None = None) -> "SupervisorSettings":
        section = (config or get_full_config())["supervisor"]
        return cls(
            command=_as_command(section["command"], "supervisor.command"),
            max_restart_attempts=_as_number(
                section["max_restart_attempts"], "supervisor.max_restart_attempts", cast=int
            ),
            restart_delay=_as_number(section["restart_delay"], "supervisor.restart_delay"),
            grace_period=_as_number(section["grace_period"], "supervisor.grace_period"),
        )
