"""
Pending Request Table

Correlates engine responses with the callers waiting on them.
Every entry is resolved exactly once: by its response or by its timeout.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Optional

from mcp_relay.configs import get_logger
from mcp_relay.exceptions import RelayError, RequestTimeoutError

logger = get_logger("bridge.pending")

RequestId = str | int | float

_NO_CALLER_ID = object()


@dataclass
class PendingRequest:
    """A dispatched request waiting for its response."""

    request_id: RequestId
    future: asyncio.Future
    timer: Optional[asyncio.TimerHandle] = None
    # Id the caller sent, when the wire id had to be replaced
    caller_id: Any = _NO_CALLER_ID

    def restore_caller_id(self, response: dict[str, Any]) -> dict[str, Any]:
        if self.caller_id is _NO_CALLER_ID:
            return response
        return {**response, "id": self.caller_id}


class PendingTable:
    """Request id -> waiting future, each with its own deadline."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        self._entries: dict[RequestId, PendingRequest] = {}

    def __contains__(self, request_id: RequestId) -> bool:
        return request_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def register(
        self,
        request_id: RequestId,
        future: asyncio.Future,
        caller_id: Any = _NO_CALLER_ID,
    ) -> PendingRequest:
        """Track a dispatched request and start its timeout."""
        entry = PendingRequest(request_id=request_id, future=future, caller_id=caller_id)
        loop = asyncio.get_running_loop()
        entry.timer = loop.call_later(self.timeout, self._expire, request_id)
        self._entries[request_id] = entry
        return entry

    def resolve(self, response: dict[str, Any]) -> bool:
        """
        Deliver a response to the caller waiting on its id.

        Returns:
            False if nothing was waiting (unknown id, or already timed out)
        """
        entry = self._pop(response.get("id"))
        if entry is None:
            return False
        if not entry.future.done():
            entry.future.set_result(entry.restore_caller_id(response))
        return True

    def discard(self, request_id: RequestId) -> Optional[PendingRequest]:
        """Forget a request without resolving it (e.g. its write failed)."""
        return self._pop(request_id)

    def fail_all(self, error: RelayError) -> int:
        """Fail every waiting request; returns how many were failed."""
        entries = list(self._entries.values())
        self._entries.clear()
        for entry in entries:
            if entry.timer:
                entry.timer.cancel()
            if not entry.future.done():
                entry.future.set_exception(error)
        return len(entries)

    def _pop(self, request_id: Any) -> Optional[PendingRequest]:
        try:
            entry = self._entries.pop(request_id, None)
        except TypeError:
            # Unhashable id in a response can never match an entry
            return None
        if entry and entry.timer:
            entry.timer.cancel()
        return entry

    def _expire(self, request_id: RequestId) -> None:
        entry = self._entries.pop(request_id, None)
        if entry is None:
            return
        logger.warning(f"Request {request_id} timed out after {self.timeout}s")
        if not entry.future.done():
            entry.future.set_exception(RequestTimeoutError(request_id, self.timeout))
