"""
Bridge Supervisor

Keeps the bridge server process running, restarting it with linear
backoff and giving up after repeated crashes.
"""

from mcp_relay.supervisor.manager import ServiceManager
from mcp_relay.supervisor.runner import run_supervisor, supervise

__all__ = ["ServiceManager", "run_supervisor", "supervise"]
