"""
Newline-delimited JSON framing.

Each message is one JSON object serialized on a single line and
terminated by "\n". Stream reads can split or join lines arbitrarily,
so LineFramer buffers partial lines between reads.
"""

import json
from typing import Any, Optional


class LineFramer:
    """Split a byte stream into complete text lines."""

    def __init__(self, encoding: str = "utf-8"):
        self._buffer = b""
        self._encoding = encoding

    def feed(self, data: bytes) -> list[str]:
        """
        Add bytes read from the stream.

        Returns:
            Complete, non-blank lines (without the newline), in stream order
        """
        self._buffer += data
        if b"\n" not in self._buffer:
            return []

        *complete, self._buffer = self._buffer.split(b"\n")
        return self._decode(complete)

    def flush(self) -> list[str]:
        """Return the unterminated tail (at EOF) and reset the buffer."""
        tail, self._buffer = self._buffer, b""
        return self._decode([tail])

    @property
    def pending_bytes(self) -> int:
        return len(self._buffer)

    def _decode(self, chunks: list[bytes]) -> list[str]:
        lines = []
        for chunk in chunks:
            line = chunk.decode(self._encoding, errors="replace").strip()
            if line:
                lines.append(line)
        return lines


def encode_message(message: dict[str, Any]) -> bytes:
    """Serialize a message as one newline-terminated line."""
    return (json.dumps(message, separators=(",", ":")) + "\n").encode("utf-8")


def decode_line(line: str) -> Optional[dict[str, Any]]:
    """
    Parse a line as a JSON object.

    Returns:
        The parsed object, or None if the line is not a JSON object
        (servers commonly print plain log text on stdout)
    """
    try:
        message = json.loads(line)
    except ValueError:
        return None
    if not isinstance(message, dict):
        return None
    return message
