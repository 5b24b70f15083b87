from __future__ import annotations

import os
from typing import TYPE_CHECKING

try:
    from openai import APIStatusError as _APIStatusError
    from openai import OpenAI as _OpenAI
except ImportError:
    _OpenAI = None  # type: ignore[assignment,misc]
    _APIStatusError = None  # type: ignore[assignment,misc]

from commitguard_core.errors import ErrorKind, ProviderError
from commitguard_core.models import ExecutionResult
from commitguard_core.providers.base import BaseProvider

if TYPE_CHECKING:
    from commitguard_core.executor import ExecutionContext
    from commitguard_core.models import ProviderSpec

_MAX_TOKENS = 4096


class OpenAIProvider(BaseProvider):
    NAME = "openai"
    DESCRIPTION = "OpenAI API"
    DEFAULT_MODEL = "gpt-4o"
    TEMPERATURE = 0.2
    INSTALL_HINT = "Install it with: pip install 'commitguard[openai]'"

    def _check_dependencies(self, spec: ProviderSpec) -> None:
        if _OpenAI is None:
            raise self._missing("The 'openai' package")
        if not os.environ.get("OPENAI_API_KEY"):
            raise ProviderError(ErrorKind.MISSING_DEPENDENCY, self.NAME, "OPENAI_API_KEY is not set")

    def execute(self, spec: ProviderSpec, prompt: str, context: ExecutionContext) -> ExecutionResult:
        if _OpenAI is None:
            raise self._missing("The 'openai' package")
        client = _OpenAI(api_key=os.environ.get("OPENAI_API_KEY"), timeout=context.timeout, max_retries=0)
        context.on_cancel(client.close)
        try:
            response = client.chat.completions.create(
                model=self._model(spec),
                messages=[{"role": "user", "content": prompt}],
                temperature=self.TEMPERATURE,
                max_tokens=_MAX_TOKENS,
            )
        except _APIStatusError as e:
            raise ProviderError(ErrorKind.PROVIDER_REPORTED_ERROR, self.NAME, str(e))
        finally:
            client.close()
        if not response.choices or not response.choices[0].message.content:
            raise ProviderError(ErrorKind.MALFORMED_RESPONSE, self.NAME, "response contained no text")
        return ExecutionResult(exit_code=0, output=response.choices[0].message.content)
