"""No-op cache, used with ``--no-cache`` or ``cache: false``.

Using a NoOpCache rather than None lets the reviewer always call
cache.lookup() / cache.record() without conditional checks.
"""

from __future__ import annotations

from commitguard_store.base import BaseCache
from commitguard_store.models import CacheStatus


class NoOpCache(BaseCache):
    """Remembers nothing: every file is reviewed on every run."""

    def prepare(self, rules_fingerprint: str) -> None:
        pass

    def lookup(self, path: str, file_hash: str) -> CacheStatus:
        return CacheStatus.UNKNOWN

    def record(self, path: str, file_hash: str, status: CacheStatus | str) -> None:
        pass  # intentional no-op

    def flush(self) -> None:
        pass

    def clear(self) -> None:
        pass

    def stats(self) -> dict:
        return {"total": 0, "passed": 0, "failed": 0}
