"""init command: interactive setup for a repository.

Writes .commitguard.yml and, when missing, a starter REVIEW_RULES.md so the
first `commitguard run` has everything it needs.
"""

from __future__ import annotations

from pathlib import Path

import click
import yaml
from rich.console import Console

from commitguard_core.config import DEFAULT_RULES_FILE
from commitguard_core.models import ProviderSpec
from commitguard_core.providers.registry import PROVIDERS, get_provider, supported_providers

console = Console()

_RULES_TEMPLATE = """\
# Review rules

Every file in a commit is reviewed against these rules. Keep them short and
concrete; the reviewer fails the commit on any violation.

## General
- No secrets, tokens or credentials in source code.
- No debug output (print statements, console.log) left in committed code.
- Errors are handled or propagated, never silently swallowed.

## Style
- Names describe what a value is, not how it is computed.
- Functions do one thing.
"""


@click.command("init")
@click.option("--provider", default=None, help="Provider to configure (name or name:model). Prompted if omitted.")
@click.pass_context
def init_cmd(ctx, provider: str | None):
    """Set up commitguard for this repository.

    Creates .commitguard.yml and a starter REVIEW_RULES.md.
    """
    config_path = Path(ctx.obj.get("config_path", ".commitguard.yml") if ctx.obj else ".commitguard.yml")
    console.print("\n[bold cyan]commitguard init[/bold cyan]: repository setup\n")

    if provider is None:
        console.print(f"Supported providers: {', '.join(supported_providers())}")
        provider = click.prompt(
            "AI provider",
            type=click.Choice(sorted(PROVIDERS)),
            default="claude",
        )
        spec = ProviderSpec.parse(provider)
        if get_provider(spec).REQUIRES_MODEL:
            model = click.prompt(f"Model for {provider}")
            provider = str(ProviderSpec(name=spec.name, model=model))

    try:
        ProviderSpec.parse(provider)
    except ValueError as e:
        raise click.UsageError(str(e))

    config: dict = {"provider": provider}
    fallback = click.prompt("Fallback provider (blank for none)", default="", show_default=False)
    if fallback.strip():
        config["fallback_provider"] = fallback.strip()

    _write_config(config_path, config)
    console.print(f"[green]Wrote {config_path}[/green]")

    rules_path = Path(DEFAULT_RULES_FILE)
    if rules_path.exists():
        console.print(f"[dim]{rules_path} already exists, leaving it unchanged.[/dim]")
    else:
        rules_path.write_text(_RULES_TEMPLATE, encoding="utf-8")
        console.print(f"[green]Created {rules_path}[/green]. Edit it to match your team's standards.")

    console.print("\n[bold green]Setup complete![/bold green]")
    console.print("Review your staged changes with: [bold]commitguard run[/bold]")


def _write_config(path: Path, config: dict) -> None:
    """Write or update the config file, preserving any existing keys."""
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))
