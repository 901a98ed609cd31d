"""
Tests for the bridge supervisor (ServiceManager).

Children are tiny Python one-liners, so restart timing can be driven with
millisecond delays.
"""

import asyncio
import logging
import signal
import sys
from unittest.mock import patch

import pytest

from mcp_relay.configs import SupervisorSettings
from mcp_relay.supervisor import ServiceManager, supervise
from mcp_relay.supervisor.manager import describe_exit

CRASH = [sys.executable, "-c", "import sys; sys.exit(1)"]
LONG_RUNNING = [sys.executable, "-c", "import time; time.sleep(30)"]


def crash_after(seconds: float) -> list[str]:
    return [sys.executable, "-c", f"import sys, time; time.sleep({seconds}); sys.exit(2)"]


class TestBackoff:
    """Tests for linear backoff and the attempt ceiling."""

    @pytest.mark.asyncio
    async def test_delay_grows_linearly_then_gives_up(self):
        manager = ServiceManager(CRASH, max_restart_attempts=3, restart_delay=0.01, grace_period=30)

        with patch.object(manager, "_schedule_restart", wraps=manager._schedule_restart) as schedule:
            await manager.start()
            await asyncio.wait_for(manager.wait_until_gave_up(), timeout=10)

        delays = [c.args[0] for c in schedule.call_args_list]
        assert delays == pytest.approx([0.01, 0.02, 0.03])
        assert manager.gave_up
        assert manager.restart_attempts == 3
        assert not manager.is_running()
        assert manager._restart_handle is None

    @pytest.mark.asyncio
    async def test_gives_up_with_critical_log(self, caplog):
        caplog.set_level(logging.INFO, logger="relay")
        manager = ServiceManager(CRASH, max_restart_attempts=1, restart_delay=0.01, grace_period=30)

        await manager.start()
        await asyncio.wait_for(manager.wait_until_gave_up(), timeout=10)

        assert "Max restart attempts (1) reached" in caplog.text
        assert "Scheduling restart attempt 1/1" in caplog.text

    @pytest.mark.asyncio
    async def test_zero_attempts_never_restarts(self):
        manager = ServiceManager(CRASH, max_restart_attempts=0, restart_delay=0.01)
        with patch.object(manager, "_schedule_restart") as schedule:
            await manager.start()
            await asyncio.wait_for(manager.wait_until_gave_up(), timeout=10)
        schedule.assert_not_called()


class TestGraceReset:
    """Tests for resetting the attempt counter after sustained uptime."""

    @pytest.mark.asyncio
    async def test_survivor_resets_streak(self):
        manager = ServiceManager(crash_after(0.3), max_restart_attempts=5, restart_delay=0.5, grace_period=0.05)
        manager.restart_attempts = 2  # left over from an earlier crash streak

        restarted = asyncio.Event()
        with patch.object(manager, "_schedule_restart", side_effect=lambda d: restarted.set()) as schedule:
            await manager.start()
            await asyncio.wait_for(restarted.wait(), timeout=10)

        schedule.assert_called_once_with(pytest.approx(0.5))
        assert manager.restart_attempts == 1

    @pytest.mark.asyncio
    async def test_early_crash_continues_streak(self):
        manager = ServiceManager(crash_after(0.05), max_restart_attempts=5, restart_delay=0.5, grace_period=10)
        manager.restart_attempts = 2

        restarted = asyncio.Event()
        with patch.object(manager, "_schedule_restart", side_effect=lambda d: restarted.set()) as schedule:
            await manager.start()
            await asyncio.wait_for(restarted.wait(), timeout=10)

        schedule.assert_called_once_with(pytest.approx(1.5))
        assert manager.restart_attempts == 3

    @pytest.mark.asyncio
    async def test_grace_ignores_replaced_instance(self):
        manager = ServiceManager(LONG_RUNNING, grace_period=30)
        await manager.start()
        old_process = manager._process
        manager.restart_attempts = 4

        manager.stop()
        manager._grace_elapsed(old_process)
        assert manager.restart_attempts == 0
        manager.restart_attempts = 4
        manager._grace_elapsed(old_process)
        assert manager.restart_attempts == 4
        await manager.shutdown()


class TestLifecycle:
    """Tests for start/stop/is_running and spawn failures."""

    @pytest.mark.asyncio
    async def test_start_is_noop_when_tracked(self, caplog):
        caplog.set_level(logging.INFO, logger="relay")
        manager = ServiceManager(LONG_RUNNING)
        try:
            await manager.start()
            pid = manager.pid
            await manager.start()
            assert manager.pid == pid
            assert "Service already running" in caplog.text
        finally:
            await manager.shutdown()

    @pytest.mark.asyncio
    async def test_spawn_error_does_not_count(self):
        manager = ServiceManager(["/nonexistent/bridge"], max_restart_attempts=3, restart_delay=0.01)
        with patch.object(manager, "_schedule_restart") as schedule:
            await manager.start()
            await asyncio.sleep(0.05)

        assert not manager.is_running()
        assert manager.pid is None
        assert manager.restart_attempts == 0
        assert not manager.gave_up
        schedule.assert_not_called()

    @pytest.mark.asyncio
    async def test_stop_clears_state_and_never_restarts(self, wait_until):
        manager = ServiceManager(LONG_RUNNING, restart_delay=0.01, grace_period=30)
        await manager.start()
        assert manager.is_running()
        process = manager._process
        manager.restart_attempts = 2

        with patch.object(manager, "_schedule_restart") as schedule:
            manager.stop()
            assert not manager.is_running()
            assert manager.restart_attempts == 0
            await wait_until(lambda: process.returncode is not None)
            await asyncio.sleep(0.05)

        schedule.assert_not_called()
        assert process.returncode == -signal.SIGTERM
        await manager.shutdown()

    @pytest.mark.asyncio
    async def test_stop_cancels_scheduled_restart(self):
        manager = ServiceManager(CRASH, max_restart_attempts=3, restart_delay=5, grace_period=30)
        await manager.start()
        while manager._restart_handle is None:
            await asyncio.sleep(0.01)

        handle = manager._restart_handle
        assert manager.restart_attempts == 1
        manager.stop()
        assert handle.cancelled()
        assert manager.restart_attempts == 0

    @pytest.mark.asyncio
    async def test_start_after_stop_begins_a_fresh_streak(self):
        manager = ServiceManager(CRASH, max_restart_attempts=3, restart_delay=5, grace_period=30)
        await manager.start()
        while manager._restart_handle is None:
            await asyncio.sleep(0.01)
        manager.stop()

        restarted = asyncio.Event()
        with patch.object(manager, "_schedule_restart", side_effect=lambda d: restarted.set()) as schedule:
            await manager.start()
            await asyncio.wait_for(restarted.wait(), timeout=10)

        schedule.assert_called_once_with(pytest.approx(5))
        assert manager.restart_attempts == 1

    @pytest.mark.asyncio
    async def test_child_output_is_relayed(self, caplog):
        caplog.set_level(logging.INFO, logger="relay")
        command = [
            sys.executable,
            "-c",
            "import sys; print('bridge listening'); print('bridge warning', file=sys.stderr)",
        ]
        manager = ServiceManager(command, max_restart_attempts=0)
        await manager.start()
        await asyncio.wait_for(manager.wait_until_gave_up(), timeout=10)
        await manager.shutdown()

        child_records = [r for r in caplog.records if r.name == "relay.supervisor.child"]
        assert ("bridge listening", logging.INFO) in [(r.getMessage(), r.levelno) for r in child_records]
        assert ("bridge warning", logging.WARNING) in [(r.getMessage(), r.levelno) for r in child_records]

    def test_from_settings(self):
        settings = SupervisorSettings(command=["bridge"], max_restart_attempts=7, restart_delay=1.5, grace_period=9)
        manager = ServiceManager.from_settings(settings)
        assert manager.command == ["bridge"]
        assert manager.max_restart_attempts == 7
        assert manager.restart_delay == 1.5
        assert manager.grace_period == 9

    def test_describe_exit(self):
        assert describe_exit(3) == "code 3 and signal None"
        assert describe_exit(-signal.SIGTERM) == "code None and signal SIGTERM"


class TestSupervise:
    """Tests for the supervisor main loop."""

    @pytest.mark.asyncio
    async def test_exit_status_after_giving_up(self):
        manager = ServiceManager(CRASH, max_restart_attempts=1, restart_delay=0.01)
        assert await asyncio.wait_for(supervise(manager), timeout=10) == 1
