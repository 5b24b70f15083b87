from __future__ import annotations

import os
from typing import TYPE_CHECKING

from commitguard_core.errors import ErrorKind, ProviderError
from commitguard_core.models import ExecutionResult
from commitguard_core.providers.base import BaseProvider

if TYPE_CHECKING:
    from commitguard_core.executor import ExecutionContext
    from commitguard_core.models import ProviderSpec

_MAX_TOKENS = 4096


class AnthropicProvider(BaseProvider):
    NAME = "anthropic"
    DESCRIPTION = "Anthropic API"
    DEFAULT_MODEL = "claude-sonnet-4-20250514"
    # Low temperature keeps the STATUS / #N finding format stable across runs.
    TEMPERATURE = 0.2
    INSTALL_HINT = "Install it with: pip install 'commitguard[anthropic]'"

    def _check_dependencies(self, spec: ProviderSpec) -> None:
        try:
            import anthropic  # noqa: F401
        except ImportError:
            raise self._missing("The 'anthropic' package")
        if not os.environ.get("ANTHROPIC_API_KEY"):
            raise ProviderError(ErrorKind.MISSING_DEPENDENCY, self.NAME, "ANTHROPIC_API_KEY is not set")

    def execute(self, spec: ProviderSpec, prompt: str, context: ExecutionContext) -> ExecutionResult:
        # Imported inside the method because the anthropic package is optional;
        # validate() already checked it is installed before we reach here.
        from anthropic import Anthropic, APIStatusError
        from anthropic.types import TextBlock

        client = Anthropic(api_key=os.environ.get("ANTHROPIC_API_KEY"), timeout=context.timeout, max_retries=0)
        context.on_cancel(client.close)
        try:
            response = client.messages.create(
                model=self._model(spec),
                messages=[{"role": "user", "content": prompt}],
                temperature=self.TEMPERATURE,
                max_tokens=_MAX_TOKENS,
            )
        except APIStatusError as e:
            raise ProviderError(ErrorKind.PROVIDER_REPORTED_ERROR, self.NAME, str(e))
        finally:
            client.close()
        text_blocks = [block.text for block in response.content if isinstance(block, TextBlock)]
        text = "".join(text_blocks).strip()
        if not text:
            raise ProviderError(ErrorKind.MALFORMED_RESPONSE, self.NAME, "response contained no text")
        return ExecutionResult(exit_code=0, output=text)
