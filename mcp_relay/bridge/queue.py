"""Requests held back until the engine is ready, in arrival order."""

import asyncio
from collections import deque
from dataclasses import dataclass
from typing import Any, Iterator

from mcp_relay.exceptions import RelayError


@dataclass
class QueuedRequest:
    """A validated request waiting for the engine to become ready."""

    request: dict[str, Any]
    future: asyncio.Future

    @property
    def id(self) -> Any:
        return self.request.get("id")


class RequestQueue:
    """FIFO of QueuedRequest."""

    def __init__(self):
        self._items: deque[QueuedRequest] = deque()

    def __len__(self) -> int:
        return len(self._items)

    def append(self, item: QueuedRequest) -> None:
        self._items.append(item)

    def drain(self) -> Iterator[QueuedRequest]:
        """Remove and yield items oldest first."""
        while self._items:
            yield self._items.popleft()

    def fail_all(self, error: RelayError) -> int:
        count = 0
        for item in self.drain():
            if not item.future.done():
                item.future.set_exception(error)
            count += 1
        return count
