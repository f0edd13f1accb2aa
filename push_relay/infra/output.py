"""Serialised echo of processed events to standard output."""

from __future__ import annotations

from threading import Lock
from typing import TextIO


class EchoWriter:
    """Write whole lines to a shared stream without interleaving."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self._lock = Lock()
        self._count = 0

    @property
    def count(self) -> int:
        return self._count

    def write(self, line: str) -> None:
        with self._lock:
            self._stream.write(line + "\n")
            self._stream.flush()
            self._count += 1


__all__ = ["EchoWriter"]
