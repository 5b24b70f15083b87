"""FileCache: per-project JSON record of file verdicts under the user cache directory.

Layout::

    $XDG_CACHE_HOME/commitguard/<project_id>/cache.json

``project_id`` is derived from the absolute repository root, so two checkouts
of the same repository keep separate caches. The record is a CacheSnapshot:
one rules fingerprint plus a path -> {hash, status} map.

A cache that cannot be read is treated as empty, and a failed write is only
logged. Losing the cache only costs a re-review; it must never block a commit.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import shutil
from pathlib import Path

from commitguard_store.base import BaseCache
from commitguard_store.models import CacheEntry, CacheSnapshot, CacheStatus

logger = logging.getLogger(__name__)

_CACHE_FILENAME = "cache.json"
_PROJECT_ID_CHARS = 16


def default_cache_dir() -> Path:
    base = os.environ.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    return Path(base) / "commitguard"


def project_id(repo_root: str | Path) -> str:
    root = str(Path(repo_root).resolve())
    return hashlib.sha256(root.encode("utf-8")).hexdigest()[:_PROJECT_ID_CHARS]


class FileCache(BaseCache):
    """Stores verdicts in a JSON file keyed by the project's repository root.

    The record is loaded on first use and written back by flush() only when
    something changed.
    """

    def __init__(self, repo_root: str | Path, cache_dir: str | Path | None = None):
        self.project_id = project_id(repo_root)
        self.directory = Path(cache_dir) if cache_dir else default_cache_dir()
        self.path = self.directory / self.project_id / _CACHE_FILENAME
        self._snapshot: CacheSnapshot | None = None
        self._dirty = False

    # ------------------------------------------------------------------ #

    def _load(self) -> CacheSnapshot:
        if self._snapshot is not None:
            return self._snapshot
        self._snapshot = self._read()
        return self._snapshot

    def _read(self) -> CacheSnapshot:
        if not self.path.exists():
            return CacheSnapshot()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return CacheSnapshot.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Could not read review cache %s, starting empty: %s", self.path, e)
            return CacheSnapshot()

    # ------------------------------------------------------------------ #

    def prepare(self, rules_fingerprint: str) -> None:
        snapshot = self._load()
        if snapshot.rules_hash == rules_fingerprint:
            return
        if snapshot.entries:
            logger.info("Review rules changed; discarding %d cached verdict(s)", len(snapshot.entries))
        self._snapshot = CacheSnapshot(rules_hash=rules_fingerprint)
        self._dirty = True

    def lookup(self, path: str, file_hash: str) -> CacheStatus:
        entry = self._load().entries.get(path)
        if entry is None or entry.file_hash != file_hash:
            return CacheStatus.UNKNOWN
        return entry.status

    def record(self, path: str, file_hash: str, status: CacheStatus | str) -> None:
        self._load().entries[path] = CacheEntry(file_hash=file_hash, status=CacheStatus(status))
        self._dirty = True

    def flush(self) -> None:
        if not self._dirty or self._snapshot is None:
            return
        tmp_path = self.path.with_suffix(".json.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(self._snapshot.to_dict(), indent=2), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.warning("Could not write review cache %s, verdicts not saved: %s", self.path, e)
            if tmp_path.exists():
                tmp_path.unlink()
            return
        self._dirty = False

    def clear(self) -> None:
        shutil.rmtree(self.path.parent, ignore_errors=True)
        self._snapshot = CacheSnapshot()
        self._dirty = False

    def stats(self) -> dict:
        entries = self._load().entries.values()
        passed = sum(1 for e in entries if e.status is CacheStatus.PASSED)
        failed = sum(1 for e in entries if e.status is CacheStatus.FAILED)
        return {
            "total": passed + failed,
            "passed": passed,
            "failed": failed,
            "path": str(self.path),
            "project_id": self.project_id,
        }
