#!/usr/bin/env python3
"""
MCP Relay Entrypoint

Dispatches to the appropriate mode based on command line argument.

Modes:
  supervisor  - Run the bridge server under the restart supervisor (default)
  bridge      - Run the HTTP bridge server in the foreground
  status      - Print /health of a running bridge (optional URL argument)
"""

import json
import sys


def main():
    mode = sys.argv[1] if len(sys.argv) > 1 else "supervisor"

    if mode in ("supervisor", "bridge", "status"):
        from mcp_relay.configs import get_logger, setup_logging
        from mcp_relay.exceptions import ConfigurationError

        # Initialize logging (must be called before get_logger)
        setup_logging(role=mode)
        logger = get_logger("entrypoint")
    else:
        print(f"Unknown mode: {mode}", file=sys.stderr)
        print("Usage: entrypoint.py [supervisor|bridge|status [URL]]", file=sys.stderr)
        sys.exit(1)

    try:
        if mode == "supervisor":
            from mcp_relay.supervisor import run_supervisor

            sys.exit(run_supervisor())

        elif mode == "bridge":
            from mcp_relay.controllers.http import run_server

            sys.exit(run_server())

        else:
            from mcp_relay.configs import BridgeSettings
            from mcp_relay.exceptions import ClientError
            from mcp_relay.utils.http_client import get_health

            if len(sys.argv) > 2:
                url = sys.argv[2]
            else:
                url = f"http://localhost:{BridgeSettings.from_config().port}"
            try:
                print(json.dumps(get_health(url), indent=2))
            except ClientError as e:
                print(f"Bridge not reachable: {e}", file=sys.stderr)
                sys.exit(1)

    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
