"""In-memory deduplication of event lines shared by all workers."""

from __future__ import annotations

import hashlib
from threading import Lock


class DeduplicationStore:
    """Remember event text seen during this process lifetime.

    Lines are kept as SHA-256 fingerprints so memory stays bounded per entry
    regardless of line length. Check-and-mark is atomic across threads.
    """

    def __init__(self) -> None:
        self._seen: set[str] = set()
        self._lock = Lock()

    def check_and_mark(self, text: str) -> bool:
        """Return ``True`` if ``text`` was already seen, recording it either way."""

        fingerprint = self._hash(text)
        with self._lock:
            if fingerprint in self._seen:
                return True
            self._seen.add(fingerprint)
            return False

    def __contains__(self, text: object) -> bool:
        if not isinstance(text, str):
            return False
        with self._lock:
            return self._hash(text) in self._seen

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)

    def reset(self) -> None:
        with self._lock:
            self._seen.clear()

    @staticmethod
    def _hash(content: str) -> str:
        return hashlib.sha256(content.encode("utf-8")).hexdigest()


__all__ = ["DeduplicationStore"]
