"""
Bridge

The request router between HTTP callers and the engine channel.
One Bridge owns the channel, the pending table, and the readiness queue;
nothing else mutates them.

All methods run on the event loop thread. Dispatch and queue drainage are
plain (non-async) methods, so each one completes without interleaving
with other requests.
"""

import asyncio
from typing import Any, Optional

from mcp_relay.bridge.channel import EngineChannel
from mcp_relay.bridge.ids import RequestIdGenerator
from mcp_relay.bridge.pending import PendingTable
from mcp_relay.bridge.queue import QueuedRequest, RequestQueue
from mcp_relay.configs import BridgeSettings, get_logger
from mcp_relay.configs.constants import INIT_REQUEST_ID
from mcp_relay.exceptions import ChannelUnavailableError
from mcp_relay.protocol import has_id

logger = get_logger("bridge")


class Bridge:
    """Relays JSON-RPC requests to one engine and routes its responses back."""

    def __init__(
        self,
        settings: BridgeSettings,
        ids: Optional[RequestIdGenerator] = None,
        channel: Optional[EngineChannel] = None,
    ):
        self.settings = settings
        self.ids = ids or RequestIdGenerator()
        self.pending = PendingTable(timeout=settings.request_timeout)
        self.queue = RequestQueue()
        self.channel = channel or EngineChannel(
            command=settings.engine_command,
            on_message=self.on_engine_message,
            on_ready=self.on_engine_ready,
            ready_marker=settings.ready_marker,
            restart_delay=settings.restart_delay,
            shutdown_timeout=settings.shutdown_timeout,
        )

    @property
    def ready(self) -> bool:
        return self.channel.ready

    @property
    def pending_count(self) -> int:
        return len(self.pending)

    @property
    def queued_count(self) -> int:
        return len(self.queue)

    async def start(self) -> None:
        await self.channel.start()

    async def stop(self) -> None:
        """Stop the engine and fail everything still waiting on it."""
        await self.channel.stop()
        error = ChannelUnavailableError("Bridge is shutting down")
        queued = self.queue.fail_all(error)
        pending = self.pending.fail_all(error)
        if queued or pending:
            logger.info(f"Failed {queued} queued and {pending} pending requests on shutdown")

    async def submit(self, request: dict[str, Any]) -> dict[str, Any]:
        """
        Send a validated JSON-RPC request and wait for its response.

        The request is written immediately if the engine is ready, and
        queued until readiness otherwise.

        Raises:
            RequestTimeoutError: No response within the request timeout
            ChannelUnavailableError: No engine to write to
        """
        future = asyncio.get_running_loop().create_future()
        if self.channel.ready:
            self._dispatch(request, future)
        else:
            logger.debug(f"MCP server not ready, queueing {request.get('method')}")
            self.queue.append(QueuedRequest(request=request, future=future))
        return await future

    def on_engine_ready(self) -> None:
        """Readiness signal from the channel: flush the queue in order."""
        if len(self.queue):
            logger.info(f"Dispatching {len(self.queue)} queued requests")
        for item in self.queue.drain():
            if item.future.done():
                # Caller went away while queued
                continue
            self._dispatch(item.request, item.future)

    def on_engine_message(self, message: dict[str, Any]) -> None:
        """Response from the channel: hand it to whoever is waiting."""
        if not self.pending.resolve(message):
            logger.debug(f"Dropping response with no waiting request: id={message.get('id')}")

    def _dispatch(self, request: dict[str, Any], future: asyncio.Future) -> None:
        request_id = self._assign_id(request)
        if has_id(request) and request["id"] != request_id:
            self.pending.register(request_id, future, caller_id=request["id"])
        else:
            self.pending.register(request_id, future)

        try:
            self.channel.write({**request, "id": request_id})
        except ChannelUnavailableError as e:
            self.pending.discard(request_id)
            if not future.done():
                future.set_exception(e)
            return
        logger.debug(f"Forwarded {request.get('method')} as id={request_id}")

    def _assign_id(self, request: dict[str, Any]) -> Any:
        """Keep the caller's id unless it is missing, reserved, or in flight."""
        if has_id(request):
            request_id = request["id"]
            usable = isinstance(request_id, (str, int, float)) and not isinstance(request_id, bool)
            if usable and request_id != INIT_REQUEST_ID and request_id not in self.pending:
                return request_id
        return self.ids.next_id()
