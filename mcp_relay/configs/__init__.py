"""
Relay Configuration Module

Re-exports commonly used functions for cleaner imports across the codebase.
"""

# Logging (most commonly used)
from mcp_relay.configs.logging import get_logger, setup_logging

# Paths
from mcp_relay.configs.paths import ensure_data_dir, get_data_path

# Constants
from mcp_relay.configs.constants import TIMEOUTS, get_timeout

# YAML config
from mcp_relay.configs.yaml_config import (
    DEFAULT_CONFIG_YAML,
    create_default_config,
    get_config_path,
    load_yaml_config,
    save_yaml_config,
)

# Runtime
from mcp_relay.configs.runtime import (
    DEFAULT_CONFIG,
    BridgeSettings,
    SupervisorSettings,
    get_full_config,
)

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    # Paths
    "get_data_path",
    "ensure_data_dir",
    # Constants
    "TIMEOUTS",
    "get_timeout",
    # YAML config
    "DEFAULT_CONFIG_YAML",
    "get_config_path",
    "load_yaml_config",
    "save_yaml_config",
    "create_default_config",
    # Runtime
    "DEFAULT_CONFIG",
    "BridgeSettings",
    "SupervisorSettings",
    "get_full_config",
]
