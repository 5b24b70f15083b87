"""Error taxonomy shared by providers, the executor and the retry coordinator.

Providers never leak SDK- or transport-specific exceptions past the executor:
everything is folded into an ErrorKind so the coordinator can decide what is
retryable without knowing which backend produced the failure.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    MISSING_DEPENDENCY = "missing_dependency"
    MISSING_MODEL = "missing_model"
    INVALID_HOST_FORMAT = "invalid_host_format"
    TIMEOUT = "timeout"
    TRANSPORT_FAILURE = "transport_failure"
    MALFORMED_RESPONSE = "malformed_response"
    PROVIDER_REPORTED_ERROR = "provider_reported_error"
    RETRIES_EXHAUSTED = "retries_exhausted"
    FALLBACK_UNAVAILABLE = "fallback_unavailable"


# Configuration problems: retrying the same call cannot fix them.
NON_RETRYABLE = frozenset({ErrorKind.MISSING_MODEL, ErrorKind.INVALID_HOST_FORMAT})


class CommitguardError(Exception):
    """Base class for errors surfaced to the CLI as a clean failure message."""


class ProviderError(CommitguardError):
    """A provider could not be validated or a single call failed."""

    def __init__(self, kind: ErrorKind, provider: str, detail: str = ""):
        self.kind = kind
        self.provider = provider
        self.detail = detail
        super().__init__(f"{provider}: {detail}" if detail else f"{provider}: {kind.value}")
