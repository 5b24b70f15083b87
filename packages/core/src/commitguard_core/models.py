"""Value types passed between the review pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from commitguard_core.errors import ErrorKind

# Exit code reported for calls killed at their deadline, matching timeout(1).
TIMEOUT_EXIT_CODE = 124

_MODEL_SEPARATOR = ":"


@dataclass(frozen=True)
class ProviderSpec:
    """A reviewer backend: base provider name plus an optional sub-model."""

    name: str
    model: str | None = None

    @classmethod
    def parse(cls, value: str) -> ProviderSpec:
        """Parse ``name`` or ``name:model``; everything after the first ``:`` is the model."""
        value = value.strip()
        name, sep, model = value.partition(_MODEL_SEPARATOR)
        if not name:
            raise ValueError(f"Invalid provider identifier: {value!r}")
        return cls(name=name, model=model if sep and model else None)

    def __str__(self) -> str:
        return f"{self.name}{_MODEL_SEPARATOR}{self.model}" if self.model else self.name


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of exactly one provider call."""

    exit_code: int
    output: str = ""
    timed_out: bool = False
    error: ErrorKind | None = None

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0 and self.error is None and not self.timed_out

    @classmethod
    def failure(cls, kind: ErrorKind, output: str = "", exit_code: int = 1) -> ExecutionResult:
        return cls(exit_code=exit_code, output=output, error=kind)

    @classmethod
    def timeout(cls) -> ExecutionResult:
        return cls(exit_code=TIMEOUT_EXIT_CODE, output="", timed_out=True, error=ErrorKind.TIMEOUT)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    initial_delay: float = 2.0
    fallback: ProviderSpec | None = None

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.initial_delay < 0:
            raise ValueError("initial_delay must not be negative")


class ReviewStatus(str, Enum):
    PASSED = "PASSED"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class Finding:
    """One ``#<index> <file_ref> - ...`` line from a provider verdict."""

    index: int
    file_ref: str
    raw_line: str

    @property
    def path(self) -> str:
        head, sep, tail = self.file_ref.rpartition(":")
        return head if sep and tail.isdigit() else self.file_ref

    @property
    def line(self) -> int | None:
        _, sep, tail = self.file_ref.rpartition(":")
        return int(tail) if sep and tail.isdigit() else None


@dataclass(frozen=True)
class IgnoreEntry:
    file_ref: str
    reason: str = ""


@dataclass
class ReviewVerdict:
    status: ReviewStatus
    findings: list[Finding] = field(default_factory=list)
    raw_output: str = ""
