"""Time-bounded execution of a single provider call.

The provider call runs on a worker thread so the caller can stop waiting at
the deadline. Stopping waiting is not enough on its own: a hung `claude`
process or a stalled HTTP socket would keep running in the background, so
every provider registers a cancel callback on its ExecutionContext (kill the
child process, close the HTTP session) and the executor fires those callbacks
when the deadline passes. A timed-out call has no usable partial output.
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable

from rich.console import Console

from commitguard_core.errors import ErrorKind, ProviderError
from commitguard_core.models import ExecutionResult, ProviderSpec
from commitguard_core.providers.registry import get_provider

logger = logging.getLogger(__name__)

DEFAULT_PROGRESS_INTERVAL = 15.0

# How long to wait for a cancelled worker to unwind before giving up on it.
_CANCEL_GRACE_SECONDS = 5.0


@dataclass
class ExecutionContext:
    """Per-call state handed to a provider: output sink, terminal flag and cancellation.

    Created fresh for every call by execute_with_timeout and discarded after it,
    so nothing about one call's progress display or cancellation leaks into
    the next.
    """

    console: Console
    is_terminal: bool = False
    timeout: float | None = None
    progress_interval: float = DEFAULT_PROGRESS_INTERVAL
    cancelled: threading.Event = field(default_factory=threading.Event)
    _callbacks: list[Callable[[], None]] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def on_cancel(self, callback: Callable[[], None]) -> None:
        """Register a cleanup to run on cancellation (runs at once if already cancelled)."""
        with self._lock:
            if not self.cancelled.is_set():
                self._callbacks.append(callback)
                return
        _run_callback(callback)

    def cancel(self) -> None:
        with self._lock:
            self.cancelled.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            _run_callback(callback)


def _run_callback(callback: Callable[[], None]) -> None:
    try:
        callback()
    except Exception as e:
        # The call is already being abandoned; a failing cleanup must not mask the timeout.
        logger.debug("Cancel callback failed: %s", e)


def default_console() -> Console:
    return Console(stderr=True)


@contextmanager
def _progress(context: ExecutionContext, label: str, timeout: float):
    """Show that we are waiting on a provider, without touching captured output."""
    message = f"Waiting for {label} (timeout: {timeout:g}s)..."
    if context.is_terminal:
        with context.console.status(message, spinner="dots"):
            yield
        return

    context.console.print(message)
    stop = threading.Event()
    started = time.monotonic()

    def _tick():
        while not stop.wait(context.progress_interval):
            elapsed = int(time.monotonic() - started)
            context.console.print(f"Still waiting for {label} ({elapsed}s elapsed)...")

    ticker = threading.Thread(target=_tick, name="commitguard-progress", daemon=True)
    ticker.start()
    try:
        yield
    finally:
        stop.set()
        ticker.join()


def execute_with_timeout(
    spec: ProviderSpec,
    prompt: str,
    timeout: float,
    console: Console | None = None,
    progress_interval: float = DEFAULT_PROGRESS_INTERVAL,
    provider=None,
) -> ExecutionResult:
    """Run one provider call, killing it if it is still running after ``timeout`` seconds."""
    provider = provider if provider is not None else get_provider(spec)
    console = console if console is not None else default_console()
    context = ExecutionContext(
        console=console,
        is_terminal=console.is_terminal,
        timeout=timeout,
        progress_interval=progress_interval,
    )
    label = provider.describe(spec)
    outcome: dict[str, ExecutionResult] = {}

    def _work():
        try:
            outcome["result"] = provider.execute(spec, prompt, context)
        except ProviderError as e:
            outcome["result"] = ExecutionResult.failure(e.kind, str(e))
        except Exception as e:
            outcome["result"] = ExecutionResult.failure(ErrorKind.TRANSPORT_FAILURE, f"{type(e).__name__}: {e}")

    worker = threading.Thread(target=_work, name=f"commitguard-{spec.name}", daemon=True)
    with _progress(context, label, timeout):
        worker.start()
        worker.join(timeout)

    if worker.is_alive():
        context.cancel()
        worker.join(_CANCEL_GRACE_SECONDS)
        logger.warning("%s timed out after %g seconds", spec, timeout)
        console.print(
            f"[red]TIMEOUT:[/red] {label} did not respond within {timeout:g} seconds. "
            "Increase `timeout` in .commitguard.yml for large reviews."
        )
        return ExecutionResult.timeout()

    result = outcome.get("result")
    if result is None:
        return ExecutionResult.failure(ErrorKind.TRANSPORT_FAILURE, "provider call ended without a result")
    logger.debug("%s finished with exit_code=%d error=%s", spec, result.exit_code, result.error)
    return result
