import logging
import os
from pathlib import Path
from typing import Optional

import yaml

from commitguard_core.models import ProviderSpec, RetryPolicy

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = ".commitguard.yml"
DEFAULT_RULES_FILE = "REVIEW_RULES.md"
LEGACY_RULES_FILE = "AGENTS.md"

DEFAULT_CONFIG: dict = {
    "provider": "claude",  # name or name:model, e.g. "ollama:qwen2.5-coder:7b"
    "fallback_provider": None,
    "file_patterns": ["*"],
    "exclude_patterns": [],  # fnmatch patterns or directory names to skip (e.g. "migrations/", "*.min.js")
    "rules_file": DEFAULT_RULES_FILE,
    "strict_mode": True,  # fail the commit when a verdict has no STATUS line
    "timeout": 300,
    "retry_count": 3,
    "retry_delay": 2,
    "max_prompt_bytes": 0,  # 0 = send everything in one prompt
    "max_file_size": 0,  # 0 = no per-file limit
    "ignore_file": ".commitguard-ignore",
    "cache": True,
    "progress_interval": 15,
}


def load_config(config_path: str = DEFAULT_CONFIG_FILE, cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .commitguard.yml in the current directory
      3. CLI argument overrides
    """
    config = {
        **DEFAULT_CONFIG,
        "file_patterns": list(DEFAULT_CONFIG["file_patterns"]),
        "exclude_patterns": list(DEFAULT_CONFIG["exclude_patterns"]),
    }

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ValueError(f"{config_path} must contain a mapping, got {type(file_config).__name__}")
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    config["config_path"] = str(path)

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")

    return config


def load_rules(config: dict) -> str:
    """
    Load the review rules sent with every prompt.

    Reads ``rules_file`` relative to cwd. When the default REVIEW_RULES.md is
    absent, a legacy AGENTS.md is still accepted with a deprecation warning.
    """
    rules_file = config.get("rules_file") or DEFAULT_RULES_FILE
    p = Path(rules_file)
    if p.exists():
        return p.read_text(encoding="utf-8")

    legacy = Path(LEGACY_RULES_FILE)
    if rules_file == DEFAULT_RULES_FILE and legacy.exists():
        logger.warning(
            "Using %s for review rules is deprecated; rename it to %s.", LEGACY_RULES_FILE, DEFAULT_RULES_FILE
        )
        return legacy.read_text(encoding="utf-8")

    raise FileNotFoundError(f"Rules file not found: {rules_file}")


def read_config_text(config: dict) -> str:
    """Raw text of the project config file, or "" when there is none."""
    path = Path(config.get("config_path") or DEFAULT_CONFIG_FILE)
    if not path.exists():
        return ""
    return path.read_text(encoding="utf-8")


def build_retry_policy(config: dict) -> RetryPolicy:
    fallback = config.get("fallback_provider")
    return RetryPolicy(
        max_attempts=int(config["retry_count"]),
        initial_delay=float(config["retry_delay"]),
        fallback=ProviderSpec.parse(fallback) if fallback else None,
    )
