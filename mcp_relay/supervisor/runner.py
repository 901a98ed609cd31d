"""
Supervisor process main loop.

Runs a ServiceManager until SIGINT/SIGTERM (exit status 0) or until the
manager gives up on a crash-looping bridge (exit status 1).
"""

import asyncio
import signal
from typing import Optional

from mcp_relay.configs import SupervisorSettings, get_logger
from mcp_relay.supervisor.manager import ServiceManager

logger = get_logger("supervisor")


async def supervise(manager: ServiceManager) -> int:
    """Start the manager and block until a signal arrives or it gives up."""
    loop = asyncio.get_running_loop()
    stop_requested = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_requested.set)

    try:
        await manager.start()
        stop_task = asyncio.create_task(stop_requested.wait())
        gave_up_task = asyncio.create_task(manager.wait_until_gave_up())
        done, pending = await asyncio.wait(
            {stop_task, gave_up_task},
            return_when=asyncio.FIRST_COMPLETED,
        )
        for task in pending:
            task.cancel()
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)

    if manager.gave_up:
        logger.critical("Bridge server is down and will not be restarted")
        return 1

    logger.info("Shutting down...")
    await manager.shutdown()
    return 0


def run_supervisor(settings: Optional[SupervisorSettings] = None) -> int:
    """Entry point: supervise the bridge server; returns the exit status."""
    settings = settings or SupervisorSettings.from_config()
    manager = ServiceManager.from_settings(settings)
    return asyncio.run(supervise(manager))
