"""
Process-level tests for entrypoint.py: real bridge and supervisor
processes driven with signals.
"""

import os
import shlex
import signal
import socket
import subprocess
import sys
import time
from pathlib import Path

import pytest

from mcp_relay.utils.http_client import http_json_get, wait_for_bridge

PROJECT_ROOT = Path(__file__).parent.parent
ENTRYPOINT = PROJECT_ROOT / "entrypoint.py"


def free_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    return True


def relay_env(data_path: Path, **overrides: str) -> dict[str, str]:
    env = {k: v for k, v in os.environ.items() if not k.startswith("RELAY_")}
    env["RELAY_DATA_PATH"] = str(data_path)
    env.update(overrides)
    return env


def run_entrypoint(mode: str, env: dict[str, str], *args: str) -> subprocess.Popen:
    return subprocess.Popen(
        [sys.executable, str(ENTRYPOINT), mode, *args],
        cwd=PROJECT_ROOT,
        env=env,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )


@pytest.fixture
def bridge_process(fake_engine, tmp_path):
    """A running `entrypoint.py bridge` whose engine is ready."""
    port = free_port()
    env = relay_env(
        tmp_path,
        RELAY_HTTP_HOST="127.0.0.1",
        RELAY_HTTP_PORT=str(port),
        RELAY_ENGINE_COMMAND=shlex.join(fake_engine()),
    )
    process = run_entrypoint("bridge", env)
    base_url = f"http://127.0.0.1:{port}"
    try:
        if not wait_for_bridge(base_url, max_attempts=150, delay=0.1):
            pytest.fail("bridge did not become ready")
        yield process, base_url
    finally:
        if process.poll() is None:
            process.kill()
            process.wait()


class TestBridgeMode:
    """Tests for `entrypoint.py bridge`."""

    @pytest.mark.parametrize("sig", [signal.SIGTERM, signal.SIGINT])
    def test_signal_stops_engine_and_exits_zero(self, bridge_process, sig):
        process, base_url = bridge_process
        engine_pid = http_json_get(f"{base_url}/info")["engine_pid"]
        assert engine_pid is not None

        process.send_signal(sig)

        assert process.wait(timeout=15) == 0
        assert not pid_alive(engine_pid)


class TestSupervisorMode:
    """Tests for `entrypoint.py supervisor`."""

    def _wait_for_log(self, log_file: Path, text: str, timeout: float = 10) -> None:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if log_file.exists() and text in log_file.read_text():
                return
            time.sleep(0.05)
        pytest.fail(f"{text!r} never logged")

    def test_sigterm_exits_zero(self, tmp_path):
        child = [sys.executable, "-c", "import time; time.sleep(30)"]
        env = relay_env(tmp_path, RELAY_BRIDGE_COMMAND=shlex.join(child))
        process = run_entrypoint("supervisor", env)
        try:
            self._wait_for_log(tmp_path / "relay.log", "Starting bridge server")
            process.send_signal(signal.SIGTERM)
            assert process.wait(timeout=15) == 0
        finally:
            if process.poll() is None:
                process.kill()
                process.wait()

    def test_gives_up_with_exit_status_one(self, tmp_path):
        child = [sys.executable, "-c", "import sys; sys.exit(1)"]
        env = relay_env(
            tmp_path,
            RELAY_BRIDGE_COMMAND=shlex.join(child),
            RELAY_MAX_RESTART_ATTEMPTS="1",
            RELAY_RESTART_DELAY="0.05",
        )
        process = run_entrypoint("supervisor", env)
        try:
            assert process.wait(timeout=15) == 1
        finally:
            if process.poll() is None:
                process.kill()
                process.wait()


class TestStatusMode:
    """Tests for `entrypoint.py status`."""

    def test_unreachable_bridge_exits_one(self, tmp_path):
        process = run_entrypoint("status", relay_env(tmp_path), f"http://127.0.0.1:{free_port()}")
        assert process.wait(timeout=15) == 1

    def test_prints_health(self, bridge_process, tmp_path):
        _, base_url = bridge_process
        result = subprocess.run(
            [sys.executable, str(ENTRYPOINT), "status", base_url],
            cwd=PROJECT_ROOT,
            env=relay_env(tmp_path),
            capture_output=True,
            text=True,
            timeout=15,
        )
        assert result.returncode == 0
        assert '"mcpServerReady": true' in result.stdout
