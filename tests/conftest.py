"""
Pytest fixtures for relay tests.
"""

import asyncio
import os
import sys
import tempfile
from pathlib import Path
from typing import Callable

import pytest

# Add project root to path for mcp_relay imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Keep tests away from the user's ~/.mcp-relay
os.environ["RELAY_DATA_PATH"] = tempfile.mkdtemp(prefix="relay_test_")

FAKE_ENGINE = Path(__file__).parent / "fixtures" / "fake_engine.py"


def engine_command(ack: str = "noid") -> list[str]:
    """Command line for the fake stdio MCP server."""
    return [sys.executable, str(FAKE_ENGINE), "--ack", ack]


@pytest.fixture
def fake_engine() -> Callable[..., list[str]]:
    """Factory for fake engine command lines."""
    return engine_command


@pytest.fixture
def wait_until():
    """Poll a predicate on the running loop until it holds or times out."""

    async def _wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(0.01)

    return _wait_until


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Empty data dir and no RELAY_* overrides."""
    for key in list(os.environ):
        if key.startswith("RELAY_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("RELAY_DATA_PATH", str(tmp_path))
    return tmp_path
