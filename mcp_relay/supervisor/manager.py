"""
Service Manager

Keeps the bridge server process alive. A process that exits is restarted
after base_delay * attempt seconds; once it has stayed up for the grace
period the attempt counter resets. After max_restart_attempts consecutive
crashes the manager gives up for the rest of its lifetime.

A process that cannot be spawned at all (e.g. missing executable) is not
retried and does not count as an attempt.
"""

import asyncio
import logging
import os
import signal
from typing import Coroutine, Optional

from mcp_relay.configs import SupervisorSettings, get_logger
from mcp_relay.protocol import LineFramer

logger = get_logger("supervisor")
child_logger = get_logger("supervisor.child")


def describe_exit(returncode: int) -> str:
    """Human-readable exit status (negative return codes are signals)."""
    if returncode < 0:
        try:
            name = signal.Signals(-returncode).name
        except ValueError:
            name = str(-returncode)
        return f"code None and signal {name}"
    return f"code {returncode} and signal None"


class ServiceManager:
    """Supervises one child process with bounded, linearly growing restarts."""

    def __init__(
        self,
        command: list[str],
        max_restart_attempts: int = 5,
        restart_delay: float = 2.0,
        grace_period: float = 5.0,
    ):
        self.command = command
        self.max_restart_attempts = max_restart_attempts
        self.restart_delay = restart_delay
        self.grace_period = grace_period
        self.restart_attempts = 0
        self._process: Optional[asyncio.subprocess.Process] = None
        self._restart_handle: Optional[asyncio.TimerHandle] = None
        self._grace_handle: Optional[asyncio.TimerHandle] = None
        self._gave_up = asyncio.Event()
        self._tasks: set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, settings: SupervisorSettings) -> "ServiceManager":
        return cls(
            command=settings.command,
            max_restart_attempts=settings.max_restart_attempts,
            restart_delay=settings.restart_delay,
            grace_period=settings.grace_period,
        )

    @property
    def gave_up(self) -> bool:
        return self._gave_up.is_set()

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process else None

    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def start(self) -> None:
        """Spawn the service unless one is already tracked."""
        if self._process is not None:
            logger.info("Service already running")
            return

        logger.info(f"Starting bridge server: {' '.join(self.command)}")
        try:
            process = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=dict(os.environ),
            )
        except OSError as e:
            logger.error(f"Failed to start process: {e}")
            self._process = None
            return

        self._process = process
        self._spawn(self._relay_output(process.stdout, logging.INFO))
        self._spawn(self._relay_output(process.stderr, logging.WARNING))
        self._spawn(self._watch(process))

        if self._grace_handle:
            self._grace_handle.cancel()
        loop = asyncio.get_running_loop()
        self._grace_handle = loop.call_later(self.grace_period, self._grace_elapsed, process)

    def stop(self) -> None:
        """Send SIGTERM and forget the process; does not wait for it to exit."""
        self._cancel_timers()
        self.restart_attempts = 0
        process, self._process = self._process, None
        if process is None:
            return

        logger.info("Stopping service...")
        try:
            process.terminate()
        except ProcessLookupError:
            pass

    async def shutdown(self, timeout: float = 5.0) -> None:
        """stop(), then wait for the process to exit (SIGKILL after timeout)."""
        process = self._process
        self.stop()
        if process is not None and process.returncode is None:
            try:
                await asyncio.wait_for(process.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Service ignored SIGTERM for {timeout}s, killing")
                process.kill()
                await process.wait()

        tasks = list(self._tasks)
        await asyncio.gather(*tasks, return_exceptions=True)

    async def wait_until_gave_up(self) -> None:
        await self._gave_up.wait()

    # --- Internals ---

    async def _watch(self, process: asyncio.subprocess.Process) -> None:
        returncode = await process.wait()
        if process is not self._process:
            # Stopped on purpose, or already replaced
            return

        logger.info(f"Process exited with {describe_exit(returncode)}")
        self._process = None
        if self._grace_handle:
            self._grace_handle.cancel()
            self._grace_handle = None

        if self.restart_attempts < self.max_restart_attempts:
            self.restart_attempts += 1
            delay = self.restart_delay * self.restart_attempts
            logger.info(
                f"Scheduling restart attempt {self.restart_attempts}/{self.max_restart_attempts} in {delay}s"
            )
            self._schedule_restart(delay)
        else:
            logger.critical(
                f"Max restart attempts ({self.max_restart_attempts}) reached. Service will not auto-restart."
            )
            self._gave_up.set()

    def _schedule_restart(self, delay: float) -> None:
        loop = asyncio.get_running_loop()
        self._restart_handle = loop.call_later(delay, self._restart)

    def _restart(self) -> None:
        self._restart_handle = None
        logger.info("Attempting to restart...")
        self._spawn(self.start())

    def _grace_elapsed(self, process: asyncio.subprocess.Process) -> None:
        self._grace_handle = None
        if process is self._process:
            self.restart_attempts = 0
            logger.info("Service running successfully")

    def _cancel_timers(self) -> None:
        for handle in (self._restart_handle, self._grace_handle):
            if handle:
                handle.cancel()
        self._restart_handle = None
        self._grace_handle = None

    async def _relay_output(self, stream: asyncio.StreamReader, level: int) -> None:
        framer = LineFramer()
        while True:
            data = await stream.read(64 * 1024)
            if not data:
                break
            for line in framer.feed(data):
                child_logger.log(level, line)
        for line in framer.flush():
            child_logger.log(level, line)

    def _spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
