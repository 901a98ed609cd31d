"""Request id generation for requests that arrive without a usable id."""

import itertools
import secrets
from typing import Optional


class RequestIdGenerator:
    """
    Produce ids of the form "req_<nonce>_<n>".

    The nonce is drawn once per process so ids never repeat across
    bridge restarts; the counter makes them unique within a process.
    Pass a fixed nonce to get deterministic ids in tests.
    """

    def __init__(self, nonce: Optional[str] = None, prefix: str = "req"):
        self.nonce = nonce or secrets.token_hex(4)
        self.prefix = prefix
        self._counter = itertools.count(1)

    def next_id(self) -> str:
        return f"{self.prefix}_{self.nonce}_{next(self._counter)}"
