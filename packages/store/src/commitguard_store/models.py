"""Review cache data models.

Decoupled from commitguard_core so the store layer can be used independently
and commitguard_core has no knowledge of persistence concerns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

CACHE_VERSION = 1


class CacheStatus(str, Enum):
    PASSED = "PASSED"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"


@dataclass
class CacheEntry:
    """Last review verdict for one file at one content hash."""

    file_hash: str
    status: CacheStatus

    def to_dict(self) -> dict:
        return {"hash": self.file_hash, "status": self.status.value}

    @classmethod
    def from_dict(cls, data: dict) -> CacheEntry:
        return cls(file_hash=str(data["hash"]), status=CacheStatus(data["status"]))


@dataclass
class CacheSnapshot:
    """Everything persisted for one project: the rules fingerprint and its entries.

    Entries are only meaningful under ``rules_hash``; a snapshot whose
    fingerprint no longer matches is discarded as a whole.
    """

    rules_hash: str = ""
    entries: dict[str, CacheEntry] = field(default_factory=dict)
    version: int = CACHE_VERSION

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "rules_hash": self.rules_hash,
            "entries": {path: entry.to_dict() for path, entry in sorted(self.entries.items())},
        }

    @classmethod
    def from_dict(cls, data: dict) -> CacheSnapshot:
        """Rebuild a snapshot; records from another format version come back empty."""
        if not isinstance(data, dict) or data.get("version") != CACHE_VERSION:
            return cls()
        raw_entries = data.get("entries") or {}
        if not isinstance(raw_entries, dict):
            return cls()
        entries = {path: CacheEntry.from_dict(raw) for path, raw in raw_entries.items()}
        return cls(rules_hash=str(data.get("rules_hash") or ""), entries=entries)
