"""
Relay HTTP Server

FastAPI application exposing the bridge: health, build info, and the
JSON-RPC relay endpoint.
"""

import asyncio
import signal
from contextlib import asynccontextmanager, contextmanager
from datetime import datetime, timezone
from typing import Generator, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from mcp_relay import __version__
from mcp_relay.bridge import Bridge
from mcp_relay.configs import BridgeSettings, get_logger
from mcp_relay.controllers.http.mcp_protocol import router as mcp_router

logger = get_logger("http")

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class HealthResponse(BaseModel):
    """Response for GET /health."""

    status: str = "ok"
    mcpServerReady: bool


class InfoResponse(BaseModel):
    """Response for GET /info."""

    version: str
    startup_time: str
    engine_pid: Optional[int] = None
    pending_requests: int
    queued_requests: int


def create_app(bridge: Optional[Bridge] = None) -> FastAPI:
    """
    Build the FastAPI application around a Bridge.

    The bridge's engine is started with the application and stopped
    (SIGTERM to the engine) when the application shuts down.

    Args:
        bridge: Bridge to expose. Defaults to one built from get_full_config().
    """
    if bridge is None:
        bridge = Bridge(BridgeSettings.from_config())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.startup_time = datetime.now(timezone.utc).isoformat()
        await bridge.start()
        yield
        logger.info("Shutting down...")
        await bridge.stop()

    app = FastAPI(
        title="MCP Relay",
        description="HTTP endpoint for a stdio JSON-RPC MCP server",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.bridge = bridge

    app.add_middleware(
        CORSMiddleware,
        allow_origins=bridge.settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(mcpServerReady=bridge.ready)

    @app.get("/info")
    def info() -> InfoResponse:
        """Build and runtime information."""
        return InfoResponse(
            version=__version__,
            startup_time=getattr(app.state, "startup_time", ""),
            engine_pid=bridge.channel.pid,
            pending_requests=bridge.pending_count,
            queued_requests=bridge.queued_count,
        )

    app.include_router(mcp_router, tags=["mcp"])
    return app


class RelayServer(uvicorn.Server):
    """
    uvicorn server whose SIGINT/SIGTERM handling ends in a normal return.

    Stock uvicorn re-raises the captured signal once the lifespan shutdown
    has run. Here the signal only requests shutdown, so the bridge exits 0
    after its engine has been stopped.
    """

    @contextmanager
    def capture_signals(self) -> Generator[None, None, None]:
        loop = asyncio.get_running_loop()
        for sig in HANDLED_SIGNALS:
            loop.add_signal_handler(sig, self.handle_exit, sig, None)
        try:
            yield
        finally:
            for sig in HANDLED_SIGNALS:
                loop.remove_signal_handler(sig)


def run_server(settings: Optional[BridgeSettings] = None) -> int:
    """
    Run the bridge behind uvicorn until SIGINT/SIGTERM.

    Returns:
        Exit status: 0 after a signal-driven shutdown, 1 if the server
        never started
    """
    settings = settings or BridgeSettings.from_config()
    app = create_app(Bridge(settings))
    server = RelayServer(
        uvicorn.Config(app, host=settings.host, port=settings.port, log_level="warning")
    )
    logger.info(f"Server listening on port {settings.port}")
    asyncio.run(server.serve())

    if not server.started:
        logger.error("Bridge server failed to start")
        return 1
    logger.info("Bridge server stopped")
    return 0
