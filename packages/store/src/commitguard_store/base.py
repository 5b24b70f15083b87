"""Abstract cache interface.

The reviewer depends on BaseCache, not on a concrete backend, so the
file-backed cache and the no-op cache are swappable without touching
review code.
"""

from __future__ import annotations

import hashlib
from abc import ABC, abstractmethod
from typing import Callable, Iterable

from commitguard_store.models import CacheStatus


def content_hash(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def rules_hash(rules_text: str, *extra_texts: str) -> str:
    """Fingerprint of everything that changes what a review means.

    Covers the rules text plus any extra inputs (the project config file).
    Each part is length-prefixed so moving text between parts changes the hash.
    """
    digest = hashlib.sha256()
    for text in (rules_text, *extra_texts):
        data = (text or "").encode("utf-8")
        digest.update(f"{len(data)}:".encode())
        digest.update(data)
    return digest.hexdigest()


class BaseCache(ABC):
    """Pluggable store of per-file review verdicts.

    A cache is scoped to one rules fingerprint: call prepare() before any
    lookup so stale verdicts from other rules are discarded first.
    """

    content_hash = staticmethod(content_hash)
    rules_hash = staticmethod(rules_hash)

    @abstractmethod
    def prepare(self, rules_fingerprint: str) -> None:
        """Bind the cache to ``rules_fingerprint``, discarding every entry if it changed."""

    @abstractmethod
    def lookup(self, path: str, file_hash: str) -> CacheStatus:
        """Return the recorded status for ``path`` at ``file_hash``, UNKNOWN if none."""

    @abstractmethod
    def record(self, path: str, file_hash: str, status: CacheStatus | str) -> None:
        """Write or overwrite the entry for ``path``."""

    @abstractmethod
    def flush(self) -> None:
        """Persist pending writes."""

    @abstractmethod
    def clear(self) -> None:
        """Remove everything stored for this project."""

    @abstractmethod
    def stats(self) -> dict:
        """Entry counts for display: total, passed, failed."""

    def filter_uncached(
        self,
        files: Iterable[str],
        hasher: Callable[[str], str],
    ) -> tuple[list[str], list[str]]:
        """Split ``files`` into (to_review, cached), preserving order.

        Only PASSED entries whose hash still matches are skipped; a file that
        previously FAILED is always reviewed again.
        """
        to_review, cached = [], []
        for path in files:
            if self.lookup(path, hasher(path)) is CacheStatus.PASSED:
                cached.append(path)
            else:
                to_review.append(path)
        return to_review, cached

    def close(self) -> None:
        """Release any resources held by the cache.

        Optional; the default is a no-op so callers can always call close() safely.
        """
