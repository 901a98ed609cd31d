"""
Engine Channel

Owns the single stdio MCP server process behind the bridge: spawns it,
sends the initialize handshake, watches for readiness, and respawns it
after a fixed delay whenever it exits.
"""

import asyncio
import os
from typing import Any, Callable, Coroutine, Optional

from mcp_relay.configs import get_logger
from mcp_relay.configs.constants import DEFAULT_READY_MARKER, INIT_REQUEST_ID
from mcp_relay.exceptions import ChannelUnavailableError, EngineSpawnError
from mcp_relay.protocol import (
    LineFramer,
    build_initialize_request,
    decode_line,
    encode_message,
    has_id,
)

logger = get_logger("bridge.channel")

READ_CHUNK_SIZE = 64 * 1024

# Unflushed stdin bytes above which a stalled engine is reported
WRITE_BUFFER_WARNING = 1024 * 1024

MessageHandler = Callable[[dict[str, Any]], None]
ReadyHandler = Callable[[], None]


class EngineChannel:
    """
    Line-delimited JSON-RPC connection to one engine subprocess.

    Readiness is signalled either by the initialize acknowledgment on
    stdout or by the ready marker on stderr, whichever comes first; the
    server's startup banner can land on either stream.
    """

    def __init__(
        self,
        command: list[str],
        on_message: MessageHandler,
        on_ready: ReadyHandler,
        ready_marker: str = DEFAULT_READY_MARKER,
        restart_delay: float = 2.0,
        shutdown_timeout: float = 5.0,
        env: Optional[dict[str, str]] = None,
        write_buffer_warning: int = WRITE_BUFFER_WARNING,
    ):
        self.command = command
        self.write_buffer_warning = write_buffer_warning
        self.ready_marker = ready_marker
        self.restart_delay = restart_delay
        self.shutdown_timeout = shutdown_timeout
        self._on_message = on_message
        self._on_ready = on_ready
        self._env = env
        self._process: Optional[asyncio.subprocess.Process] = None
        self._ready = False
        self._stopping = False
        self._restart_handle: Optional[asyncio.TimerHandle] = None
        self._starting: Optional[asyncio.Task] = None
        self._buffer_warned = False
        self._tasks: set[asyncio.Task] = set()

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process else None

    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def start(self) -> bool:
        """
        Spawn the engine and send the initialize handshake.

        Returns:
            False if the process could not be spawned. Spawn failures are
            logged and not retried.
        """
        if self._stopping:
            return False
        if self.is_running():
            logger.debug("MCP server already running")
            return True

        logger.info(f"Starting MCP server: {' '.join(self.command)}")
        try:
            process = await self._spawn_process()
        except EngineSpawnError as e:
            logger.error(str(e))
            return False

        if self._stopping:
            logger.info("Channel stopped while MCP server was starting, terminating it")
            await self._terminate(process)
            return False

        self._process = process
        self._ready = False
        self._buffer_warned = False
        logger.debug(f"MCP server spawned (pid {process.pid})")

        self._spawn(self._read_stdout(process))
        self._spawn(self._read_stderr(process))
        self._spawn(self._watch(process))

        try:
            self.write(build_initialize_request())
        except ChannelUnavailableError as e:
            logger.warning(f"Could not send initialize request: {e}")
        return True

    async def stop(self) -> None:
        """Terminate the engine and stop restarting it."""
        self._stopping = True
        if self._restart_handle:
            self._restart_handle.cancel()
            self._restart_handle = None

        # A restart in the middle of spawning sees _stopping and cleans up after itself
        starting, self._starting = self._starting, None
        if starting is not None:
            await asyncio.gather(starting, return_exceptions=True)

        process, self._process = self._process, None
        self._ready = False

        if process and process.returncode is None:
            logger.info("Stopping MCP server...")
            await self._terminate(process)

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def write(self, message: dict[str, Any]) -> None:
        """
        Write one framed message to the engine's stdin.

        Raises:
            ChannelUnavailableError: No engine process, or its stdin is closed
        """
        process = self._process
        if process is None or process.stdin is None or process.stdin.is_closing():
            raise ChannelUnavailableError("MCP server is not running")
        try:
            process.stdin.write(encode_message(message))
        except (OSError, RuntimeError) as e:
            raise ChannelUnavailableError(f"Write to MCP server failed: {e}") from e
        self._check_write_buffer(process)

    def _check_write_buffer(self, process: asyncio.subprocess.Process) -> None:
        buffered = process.stdin.transport.get_write_buffer_size()
        if buffered <= self.write_buffer_warning:
            self._buffer_warned = False
        elif not self._buffer_warned:
            self._buffer_warned = True
            logger.warning(
                f"MCP server is not reading its stdin: {buffered} bytes buffered "
                f"(pid {process.pid})"
            )

    async def _spawn_process(self) -> asyncio.subprocess.Process:
        try:
            return await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._env if self._env is not None else dict(os.environ),
            )
        except OSError as e:
            raise EngineSpawnError(f"Failed to start MCP server: {e}", self.command) from e

    # --- Stream handling ---

    async def _read_stdout(self, process: asyncio.subprocess.Process) -> None:
        framer = LineFramer()
        while True:
            data = await process.stdout.read(READ_CHUNK_SIZE)
            if not data:
                break
            for line in framer.feed(data):
                self._handle_stdout_line(process, line)
        for line in framer.flush():
            self._handle_stdout_line(process, line)

    async def _read_stderr(self, process: asyncio.subprocess.Process) -> None:
        framer = LineFramer()
        while True:
            data = await process.stderr.read(READ_CHUNK_SIZE)
            if not data:
                break
            for line in framer.feed(data):
                self._handle_stderr_line(process, line)
        for line in framer.flush():
            self._handle_stderr_line(process, line)

    def _handle_stdout_line(self, process: asyncio.subprocess.Process, line: str) -> None:
        message = decode_line(line)
        if message is None:
            # Not JSON, probably a log message
            logger.info(f"[engine] {line}")
            return

        if self._is_initialize_reply(message):
            if "result" in message:
                logger.info("MCP server initialized")
                self._mark_ready(process)
            else:
                logger.error(f"MCP server rejected initialize: {message.get('error')}")
            return

        if has_id(message):
            self._on_message(message)
        else:
            logger.debug(f"Ignoring engine notification: {message.get('method', '<none>')}")

    def _handle_stderr_line(self, process: asyncio.subprocess.Process, line: str) -> None:
        if self.ready_marker and self.ready_marker in line:
            logger.info("MCP server ready")
            self._mark_ready(process)
        else:
            logger.warning(f"[engine] {line}")

    @staticmethod
    def _is_initialize_reply(message: dict[str, Any]) -> bool:
        if message.get("id") == INIT_REQUEST_ID:
            return True
        return not has_id(message) and "result" in message

    def _mark_ready(self, process: asyncio.subprocess.Process) -> None:
        if process is not self._process:
            return
        self._ready = True
        self._on_ready()

    # --- Lifecycle ---

    async def _watch(self, process: asyncio.subprocess.Process) -> None:
        returncode = await process.wait()
        if process is not self._process:
            return

        self._process = None
        self._ready = False
        if self._stopping:
            return

        logger.error(f"MCP server exited with code: {returncode}")
        loop = asyncio.get_running_loop()
        self._restart_handle = loop.call_later(self.restart_delay, self._restart)

    def _restart(self) -> None:
        self._restart_handle = None
        logger.info("Restarting MCP server...")
        self._starting = self._spawn(self.start())

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        """SIGTERM, then SIGKILL after the shutdown timeout."""
        try:
            process.terminate()
            await asyncio.wait_for(process.wait(), timeout=self.shutdown_timeout)
        except ProcessLookupError:
            pass
        except asyncio.TimeoutError:
            logger.warning(f"MCP server ignored SIGTERM for {self.shutdown_timeout}s, killing")
            process.kill()
            await process.wait()

    def _spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Engine channel task failed: {error!r}")
