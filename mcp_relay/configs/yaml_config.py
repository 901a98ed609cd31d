"""
Relay YAML Configuration

Loading, saving, and defaults for $RELAY_DATA_PATH/config.yaml.
"""

from pathlib import Path

import yaml

from mcp_relay.configs.logging import get_logger
from mcp_relay.configs.paths import ensure_data_dir, get_data_path

logger = get_logger("config")

# --- Default Config Template ---

DEFAULT_CONFIG_YAML = """\
# MCP Relay Configuration
# Environment variables (RELAY_*) override values in this file.

# HTTP bridge in front of the stdio MCP server
bridge:
  host: "0.0.0.0"
  port: 9000

  # Command that starts the stdio MCP server
  engine_command: ["node", "index.js"]

  # Stderr text the server prints once it accepts requests
  ready_marker: "running on stdio"

  # Seconds to wait for a response before failing the request
  request_timeout: 30

  # Seconds to wait before respawning the server after it exits
  restart_delay: 2

  cors_origins: ["*"]

# Supervisor that keeps the bridge process alive
supervisor:
  # Restarts allowed before giving up; reset after grace_period seconds of uptime
  max_restart_attempts: 5

  # Base restart delay in seconds, multiplied by the attempt number
  restart_delay: 2

  grace_period: 5
"""


def get_config_path() -> Path:
    """Get the path to config.yaml."""
    return get_data_path() / "config.yaml"


def load_yaml_config() -> dict:
    """
    Load configuration from config.yaml.

    Returns:
        Configuration dictionary (empty if file doesn't exist or is unreadable)
    """
    config_path = get_config_path()
    if not config_path.exists():
        return {}

    try:
        content = yaml.safe_load(config_path.read_text())
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Ignoring unreadable config {config_path}: {e}")
        return {}

    if not isinstance(content, dict):
        return {}
    return content


def save_yaml_config(config: dict) -> bool:
    """
    Save configuration to config.yaml.

    Args:
        config: Configuration dictionary to save

    Returns:
        True if successful
    """
    config_path = get_config_path()
    ensure_data_dir()

    try:
        content = yaml.safe_dump(config, default_flow_style=False, sort_keys=False)
        config_path.write_text(content)
        return True
    except OSError as e:
        logger.error(f"Failed to save config {config_path}: {e}")
        return False


def create_default_config() -> bool:
    """
    Create default config.yaml if it doesn't exist.

    Returns:
        True if file was created, False if it already exists
    """
    config_path = get_config_path()
    if config_path.exists():
        return False

    ensure_data_dir()
    config_path.write_text(DEFAULT_CONFIG_YAML)
    return True
