"""Provider lookup by name.

Unknown names are routed to GenericProvider rather than rejected, so a new
reviewer CLI works by name alone.
"""

from __future__ import annotations

import logging

from commitguard_core.models import ProviderSpec
from commitguard_core.providers.anthropic import AnthropicProvider
from commitguard_core.providers.base import BaseProvider
from commitguard_core.providers.commands import (
    ClaudeProvider,
    CodexProvider,
    GeminiProvider,
    GenericProvider,
    OpenCodeProvider,
)
from commitguard_core.providers.http import GitHubModelsProvider, LMStudioProvider, OllamaProvider
from commitguard_core.providers.openai import OpenAIProvider

logger = logging.getLogger(__name__)

PROVIDERS: dict[str, type[BaseProvider]] = {
    "claude": ClaudeProvider,
    "gemini": GeminiProvider,
    "codex": CodexProvider,
    "opencode": OpenCodeProvider,
    "ollama": OllamaProvider,
    "lmstudio": LMStudioProvider,
    "github": GitHubModelsProvider,
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
}


def get_provider(spec: ProviderSpec) -> BaseProvider:
    provider_cls = PROVIDERS.get(spec.name)
    if provider_cls is None:
        logger.debug("No dedicated provider for %r; using generic command dispatch", spec.name)
        return GenericProvider(spec.name)
    return provider_cls()


def supported_providers() -> list[str]:
    labels = []
    for name, provider_cls in PROVIDERS.items():
        labels.append(f"{name}:<model>" if provider_cls.REQUIRES_MODEL else name)
    return labels
