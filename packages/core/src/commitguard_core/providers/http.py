"""Providers reached over HTTP: Ollama, LM Studio and GitHub Models.

Hosts come from environment variables a user controls, so they are checked
against a strict ``scheme://host[:port]`` pattern before any request is built.
A value like ``http://evil/;rm -rf`` never reaches requests.
"""

from __future__ import annotations

import logging
import os
import re
from typing import TYPE_CHECKING

import requests

from commitguard_core.auth import resolve_github_token
from commitguard_core.errors import ErrorKind, ProviderError
from commitguard_core.models import ExecutionResult
from commitguard_core.providers.base import BaseProvider

if TYPE_CHECKING:
    from commitguard_core.executor import ExecutionContext
    from commitguard_core.models import ProviderSpec

logger = logging.getLogger(__name__)

_HOST_RE = re.compile(r"^https?://[a-zA-Z0-9.-]+(:[0-9]+)?/?$")

_SNIPPET_CHARS = 200


def is_valid_host(host: str) -> bool:
    return bool(_HOST_RE.match(host))


class HttpProvider(BaseProvider):
    HOST_ENV: str | None = None
    DEFAULT_HOST: str = ""
    ENDPOINT: str = ""

    # ------------------------------------------------------------------ #
    # Hooks                                                                #
    # ------------------------------------------------------------------ #

    def build_payload(self, spec: ProviderSpec, prompt: str) -> dict:
        raise NotImplementedError

    def build_headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    # ------------------------------------------------------------------ #
    # Shared implementation                                                #
    # ------------------------------------------------------------------ #

    def resolve_host(self) -> str:
        if self.HOST_ENV:
            return os.environ.get(self.HOST_ENV) or self.DEFAULT_HOST
        return self.DEFAULT_HOST

    def _check_host(self) -> str:
        host = self.resolve_host()
        if not is_valid_host(host):
            source = self.HOST_ENV or "host"
            raise ProviderError(
                ErrorKind.INVALID_HOST_FORMAT,
                self.NAME,
                f"Invalid {source} format: {host!r}. Expected: http(s)://hostname(:port)",
            )
        return host.rstrip("/")

    def validate(self, spec: ProviderSpec) -> None:
        super().validate(spec)
        self._check_host()

    def execute(self, spec: ProviderSpec, prompt: str, context: ExecutionContext) -> ExecutionResult:
        # Checked on every call, not just in validate(): no request is ever built for a bad host.
        url = self._check_host() + self.ENDPOINT
        payload = self.build_payload(spec, prompt)
        headers = self.build_headers()

        with requests.Session() as session:
            context.on_cancel(session.close)
            try:
                response = session.post(url, json=payload, headers=headers, timeout=context.timeout)
            except requests.RequestException as e:
                raise ProviderError(ErrorKind.TRANSPORT_FAILURE, self.NAME, f"Failed to connect to {url}: {e}")
        return ExecutionResult(exit_code=0, output=self.extract_text(response))

    def extract_text(self, response: requests.Response) -> str:
        """Pull the reply out of an Ollama-style or chat-completions-style JSON body."""
        try:
            data = response.json()
        except ValueError:
            if not response.ok:
                raise ProviderError(
                    ErrorKind.TRANSPORT_FAILURE,
                    self.NAME,
                    f"HTTP {response.status_code}: {response.text[:_SNIPPET_CHARS]}",
                )
            raise ProviderError(
                ErrorKind.MALFORMED_RESPONSE,
                self.NAME,
                f"Invalid JSON response: {response.text[:_SNIPPET_CHARS]}",
            )

        if not isinstance(data, dict):
            raise ProviderError(ErrorKind.MALFORMED_RESPONSE, self.NAME, "Unexpected response format")

        error = data.get("error")
        if error:
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            raise ProviderError(ErrorKind.PROVIDER_REPORTED_ERROR, self.NAME, message)

        text = data.get("response")
        if text:
            return text

        choices = data.get("choices")
        if isinstance(choices, list) and choices:
            message = choices[0].get("message") if isinstance(choices[0], dict) else None
            content = message.get("content") if isinstance(message, dict) else None
            if content:
                return content

        if not response.ok:
            raise ProviderError(ErrorKind.TRANSPORT_FAILURE, self.NAME, f"HTTP {response.status_code}")
        raise ProviderError(ErrorKind.MALFORMED_RESPONSE, self.NAME, "Unexpected response format")


class OllamaProvider(HttpProvider):
    NAME = "ollama"
    DESCRIPTION = "Ollama"
    REQUIRES_MODEL = True
    HOST_ENV = "OLLAMA_HOST"
    DEFAULT_HOST = "http://localhost:11434"
    ENDPOINT = "/api/generate"

    def build_payload(self, spec: ProviderSpec, prompt: str) -> dict:
        return {"model": spec.model, "prompt": prompt, "stream": False}


class LMStudioProvider(HttpProvider):
    NAME = "lmstudio"
    DESCRIPTION = "LM Studio"
    # LM Studio serves whichever model is loaded when the name does not match.
    DEFAULT_MODEL = "local-model"
    HOST_ENV = "LMSTUDIO_HOST"
    DEFAULT_HOST = "http://localhost:1234"
    ENDPOINT = "/v1/chat/completions"

    def build_payload(self, spec: ProviderSpec, prompt: str) -> dict:
        return {
            "model": self._model(spec),
            "messages": [{"role": "user", "content": prompt}],
            "stream": False,
        }


class GitHubModelsProvider(HttpProvider):
    NAME = "github"
    DESCRIPTION = "GitHub Models"
    REQUIRES_MODEL = True
    DEFAULT_HOST = "https://models.inference.ai.azure.com"
    ENDPOINT = "/chat/completions"
    INSTALL_HINT = "Set GITHUB_TOKEN or run `gh auth login`."

    def _check_dependencies(self, spec: ProviderSpec) -> None:
        if resolve_github_token() is None:
            raise self._missing("GitHub token")

    def build_headers(self) -> dict[str, str]:
        token = resolve_github_token()
        if token is None:
            raise ProviderError(ErrorKind.MISSING_DEPENDENCY, self.NAME, "GitHub CLI authentication failed")
        return {"Content-Type": "application/json", "Authorization": f"Bearer {token}"}

    def build_payload(self, spec: ProviderSpec, prompt: str) -> dict:
        return {
            "model": spec.model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": False,
        }
