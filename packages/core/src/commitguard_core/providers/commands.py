"""Providers backed by a local assistant CLI (claude, gemini, codex, opencode).

Each one differs only in how the prompt is passed on the command line; spawning,
output capture and cancellation are shared in CommandProvider.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from typing import TYPE_CHECKING

from commitguard_core.errors import ErrorKind, ProviderError
from commitguard_core.models import ExecutionResult
from commitguard_core.providers.base import NO_OUTPUT_PLACEHOLDER, BaseProvider

if TYPE_CHECKING:
    from commitguard_core.executor import ExecutionContext
    from commitguard_core.models import ProviderSpec

logger = logging.getLogger(__name__)


class CommandProvider(BaseProvider):
    EXECUTABLE: str = ""
    # True: prompt is written to stdin. False: build_command puts it in argv.
    PROMPT_ON_STDIN: bool = False

    def build_command(self, spec: ProviderSpec, prompt: str) -> list[str]:
        raise NotImplementedError

    def _check_dependencies(self, spec: ProviderSpec) -> None:
        if shutil.which(self.EXECUTABLE) is None:
            raise self._missing(f"{self.EXECUTABLE} CLI")

    def execute(self, spec: ProviderSpec, prompt: str, context: ExecutionContext) -> ExecutionResult:
        argv = self.build_command(spec, prompt)
        try:
            process = subprocess.Popen(
                argv,
                stdin=subprocess.PIPE if self.PROMPT_ON_STDIN else subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                # Combined output: CLIs often report auth/quota problems on stderr.
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise ProviderError(ErrorKind.TRANSPORT_FAILURE, self.NAME, f"could not start {argv[0]}: {e}")

        context.on_cancel(process.kill)
        output, _ = process.communicate(input=prompt if self.PROMPT_ON_STDIN else None)
        output = output or ""
        if process.returncode != 0 and not output.strip():
            output = NO_OUTPUT_PLACEHOLDER
        logger.debug("%s exited with %d", argv[0], process.returncode)
        return ExecutionResult(exit_code=process.returncode, output=output)


class ClaudeProvider(CommandProvider):
    NAME = "claude"
    DESCRIPTION = "Anthropic Claude Code CLI"
    EXECUTABLE = "claude"
    PROMPT_ON_STDIN = True
    INSTALL_HINT = "Install Claude Code: https://claude.ai/code"

    def build_command(self, spec: ProviderSpec, prompt: str) -> list[str]:
        return ["claude", "--print"]


class GeminiProvider(CommandProvider):
    NAME = "gemini"
    DESCRIPTION = "Google Gemini CLI"
    EXECUTABLE = "gemini"
    INSTALL_HINT = "Install it with: npm install -g @google/gemini-cli"

    def build_command(self, spec: ProviderSpec, prompt: str) -> list[str]:
        return ["gemini", "-p", prompt]


class CodexProvider(CommandProvider):
    NAME = "codex"
    DESCRIPTION = "OpenAI Codex CLI"
    EXECUTABLE = "codex"
    INSTALL_HINT = "Install it with: npm install -g @openai/codex"

    def build_command(self, spec: ProviderSpec, prompt: str) -> list[str]:
        # exec is the non-interactive mode.
        return ["codex", "exec", prompt]


class OpenCodeProvider(CommandProvider):
    NAME = "opencode"
    DESCRIPTION = "OpenCode CLI"
    EXECUTABLE = "opencode"
    INSTALL_HINT = "Install it from https://opencode.ai"

    def build_command(self, spec: ProviderSpec, prompt: str) -> list[str]:
        if spec.model:
            return ["opencode", "run", "--model", spec.model, prompt]
        return ["opencode", "run", prompt]


class GenericProvider(CommandProvider):
    """Catch-all for provider names with no dedicated class.

    Runs an executable named after the provider with the prompt on stdin, so
    a new reviewer CLI can be used without touching the registry.
    """

    PROMPT_ON_STDIN = True

    def __init__(self, name: str):
        self.NAME = name
        self.EXECUTABLE = name
        self.DESCRIPTION = f"{name} (generic command)"

    def _check_dependencies(self, spec: ProviderSpec) -> None:
        if shutil.which(self.EXECUTABLE) is None:
            from commitguard_core.providers.registry import supported_providers

            raise ProviderError(
                ErrorKind.MISSING_DEPENDENCY,
                self.NAME,
                f"Unknown provider {self.NAME!r} and no executable of that name on PATH. "
                f"Supported providers: {', '.join(supported_providers())}",
            )

    def build_command(self, spec: ProviderSpec, prompt: str) -> list[str]:
        if spec.model:
            return [self.EXECUTABLE, "--model", spec.model]
        return [self.EXECUTABLE]
