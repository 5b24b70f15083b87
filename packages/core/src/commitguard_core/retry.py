"""Retry and fallback around single provider calls.

One logical review request moves through:

    Attempting(1) → … → Attempting(n) → Exhausted → [Fallback] → Success | Failed

Delays double from the policy's initial delay and are only slept *between*
attempts, never after the last one. The fallback gets exactly one attempt and
only if it validates on its own; an unavailable fallback does not count as an
attempt. Log records emitted here are diagnostics only and never change the
outcome.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum

from rich.console import Console

from commitguard_core.errors import NON_RETRYABLE, ErrorKind, ProviderError
from commitguard_core.executor import DEFAULT_PROGRESS_INTERVAL, execute_with_timeout
from commitguard_core.models import ExecutionResult, ProviderSpec, RetryPolicy
from commitguard_core.providers.registry import get_provider

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 300.0


class CoordinatorStatus(str, Enum):
    SUCCESS = "success"
    FALLBACK_SUCCESS = "fallback_success"
    RETRIES_EXHAUSTED = "retries_exhausted"  # primary exhausted, no fallback configured
    FALLBACK_FAILED = "fallback_failed"  # primary and fallback both failed
    FALLBACK_UNAVAILABLE = "fallback_unavailable"
    FATAL = "fatal"  # non-retryable primary error


@dataclass(frozen=True)
class CoordinatorResult:
    status: CoordinatorStatus
    output: str
    provider: ProviderSpec
    attempts: int
    fallback_used: bool = False
    error: ErrorKind | None = None
    last_error: ErrorKind | None = None

    @property
    def succeeded(self) -> bool:
        return self.status in (CoordinatorStatus.SUCCESS, CoordinatorStatus.FALLBACK_SUCCESS)


def first_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""


class RetryCoordinator:
    """Runs a prompt against the primary provider with retries, then the fallback once."""

    def __init__(
        self,
        policy: RetryPolicy,
        timeout: float = DEFAULT_TIMEOUT,
        console: Console | None = None,
        progress_interval: float = DEFAULT_PROGRESS_INTERVAL,
        provider_factory=get_provider,
        executor=execute_with_timeout,
    ):
        self.policy = policy
        self.timeout = timeout
        self.console = console
        self.progress_interval = progress_interval
        self._provider_factory = provider_factory
        self._executor = executor

    def run(self, spec: ProviderSpec, prompt: str) -> CoordinatorResult:
        provider = self._provider_factory(spec)
        try:
            provider.validate(spec)
        except ProviderError as e:
            if e.kind in NON_RETRYABLE:
                logger.error("Provider %s cannot run: %s", spec, e.detail)
                return CoordinatorResult(
                    status=CoordinatorStatus.FATAL,
                    output=str(e),
                    provider=spec,
                    attempts=0,
                    error=e.kind,
                    last_error=e.kind,
                )
            # Missing command or credential: fatal for this provider only.
            logger.error("Provider %s is not available: %s", spec, e.detail)
            return self._try_fallback(spec, prompt, 0, ExecutionResult.failure(e.kind, str(e)))

        max_attempts = self.policy.max_attempts
        delay = self.policy.initial_delay
        last: ExecutionResult | None = None
        attempt = 0

        while attempt < max_attempts:
            attempt += 1
            result = self._call(provider, spec, prompt)
            if result.succeeded:
                logger.info("Provider %s succeeded on attempt %d/%d", spec, attempt, max_attempts)
                return CoordinatorResult(
                    status=CoordinatorStatus.SUCCESS,
                    output=result.output,
                    provider=spec,
                    attempts=attempt,
                )

            last = result
            if result.error in NON_RETRYABLE:
                logger.error("Provider %s failed with a non-retryable error: %s", spec, first_line(result.output))
                return CoordinatorResult(
                    status=CoordinatorStatus.FATAL,
                    output=result.output,
                    provider=spec,
                    attempts=attempt,
                    error=result.error,
                    last_error=result.error,
                )
            if result.error is ErrorKind.MISSING_DEPENDENCY:
                logger.warning("Provider %s failed (attempt %d/%d): %s", spec, attempt, max_attempts, result.output)
                break

            if attempt < max_attempts:
                logger.warning(
                    "Provider %s failed (attempt %d/%d): %s. Retrying in %gs...",
                    spec,
                    attempt,
                    max_attempts,
                    _describe_failure(result),
                    delay,
                )
                time.sleep(delay)
                delay *= 2
            else:
                logger.warning(
                    "Provider %s failed (attempt %d/%d): %s",
                    spec,
                    attempt,
                    max_attempts,
                    _describe_failure(result),
                )

        logger.error("Provider %s failed after %d attempt(s)", spec, attempt)
        return self._try_fallback(spec, prompt, attempt, last)

    # ------------------------------------------------------------------ #

    def _call(self, provider, spec: ProviderSpec, prompt: str) -> ExecutionResult:
        return self._executor(
            spec,
            prompt,
            self.timeout,
            console=self.console,
            progress_interval=self.progress_interval,
            provider=provider,
        )

    def _try_fallback(
        self,
        spec: ProviderSpec,
        prompt: str,
        attempts: int,
        last: ExecutionResult,
    ) -> CoordinatorResult:
        fallback = self.policy.fallback
        if fallback is None:
            return CoordinatorResult(
                status=CoordinatorStatus.RETRIES_EXHAUSTED,
                output=last.output,
                provider=spec,
                attempts=attempts,
                error=ErrorKind.RETRIES_EXHAUSTED,
                last_error=last.error,
            )

        logger.info("Attempting fallback provider: %s", fallback)
        provider = self._provider_factory(fallback)
        try:
            provider.validate(fallback)
        except ProviderError as e:
            logger.error("Fallback provider %s is not available: %s", fallback, e.detail)
            return CoordinatorResult(
                status=CoordinatorStatus.FALLBACK_UNAVAILABLE,
                output=last.output,
                provider=spec,
                attempts=attempts,
                error=ErrorKind.FALLBACK_UNAVAILABLE,
                last_error=last.error,
            )

        result = self._call(provider, fallback, prompt)
        if result.succeeded:
            logger.info("Fallback provider %s succeeded after primary %s was exhausted", fallback, spec)
            return CoordinatorResult(
                status=CoordinatorStatus.FALLBACK_SUCCESS,
                output=result.output,
                provider=fallback,
                attempts=attempts,
                fallback_used=True,
            )

        logger.error(
            "Fallback provider %s also failed. Primary error: %s. Fallback error: %s",
            fallback,
            first_line(last.output),
            _describe_failure(result),
        )
        return CoordinatorResult(
            status=CoordinatorStatus.FALLBACK_FAILED,
            output=result.output,
            provider=fallback,
            attempts=attempts,
            fallback_used=True,
            error=ErrorKind.RETRIES_EXHAUSTED,
            last_error=result.error,
        )


def _describe_failure(result: ExecutionResult) -> str:
    if result.timed_out:
        return "timed out"
    detail = first_line(result.output) or f"exit code {result.exit_code}"
    if result.error is not None:
        return f"{result.error.value}: {detail}"
    return detail
