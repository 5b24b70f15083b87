"""Base provider implementing the Template Method pattern.

Every reviewer backend exposes the same three capabilities:
    validate()  → is the command / library / credential / model available?
    execute()   → one raw call, prompt in, ExecutionResult out
    describe()  → human-readable label for progress and diagnostics

Subclasses declare what they need as class attributes (REQUIRES_MODEL,
DEFAULT_MODEL, INSTALL_HINT) and implement two hooks only:
  - _check_dependencies: raise ProviderError if something is missing
  - execute: make one call and return the result

Retries, fallback and deadlines are deliberately absent here: one call is
one call. The retry coordinator and the executor own those concerns so they
are defined once instead of per backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from commitguard_core.errors import ErrorKind, ProviderError

if TYPE_CHECKING:
    from commitguard_core.executor import ExecutionContext
    from commitguard_core.models import ExecutionResult, ProviderSpec

# Shown when a failing provider printed nothing, so diagnostics are never blank.
NO_OUTPUT_PLACEHOLDER = "(provider returned no output)"


class BaseProvider(ABC):
    NAME: str = ""
    DESCRIPTION: str = ""
    REQUIRES_MODEL: bool = False
    DEFAULT_MODEL: str | None = None
    INSTALL_HINT: str = ""

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def validate(self, spec: ProviderSpec) -> None:
        """Raise ProviderError if this provider cannot run ``spec``; never executes anything."""
        if self.REQUIRES_MODEL and not spec.model:
            raise ProviderError(
                ErrorKind.MISSING_MODEL,
                self.NAME,
                f"{self.DESCRIPTION} requires a model, e.g. provider: \"{self.NAME}:<model>\"",
            )
        self._check_dependencies(spec)

    @abstractmethod
    def execute(self, spec: ProviderSpec, prompt: str, context: ExecutionContext) -> ExecutionResult:
        """Make a single call and return its result.

        May raise ProviderError for classified failures; the executor folds
        any exception into an ExecutionResult.
        """

    def describe(self, spec: ProviderSpec) -> str:
        if spec.model:
            return f"{self.DESCRIPTION} (model: {spec.model})"
        return self.DESCRIPTION

    # ------------------------------------------------------------------ #
    # Hooks                                                                #
    # ------------------------------------------------------------------ #

    def _check_dependencies(self, spec: ProviderSpec) -> None:
        """Raise ProviderError(MISSING_DEPENDENCY) when a prerequisite is absent."""

    def _model(self, spec: ProviderSpec) -> str | None:
        return spec.model or self.DEFAULT_MODEL

    def _missing(self, what: str) -> ProviderError:
        detail = f"{what} not found"
        if self.INSTALL_HINT:
            detail += f". {self.INSTALL_HINT}"
        return ProviderError(ErrorKind.MISSING_DEPENDENCY, self.NAME, detail)
