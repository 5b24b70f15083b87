"""cache command: inspect or clear the review cache."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

console = Console()


def _file_cache(ctx):
    from commitguard_store.noop import NoOpCache

    cache = ctx.obj.get("cache") if ctx.obj else None
    if cache is None or isinstance(cache, NoOpCache):
        raise click.UsageError("Caching is disabled. Set 'cache: true' in .commitguard.yml to enable it.")
    return cache


@click.group("cache")
def cache_cmd():
    """Files that passed review are skipped until their content or the rules change."""


@cache_cmd.command("status")
@click.pass_context
def status_cmd(ctx):
    """Show what the cache holds for this repository."""
    stats = _file_cache(ctx).stats()

    table = Table(title="Review cache", show_header=False)
    table.add_column("Key", style="bold cyan")
    table.add_column("Value")
    table.add_row("Location", stats.get("path", ""))
    table.add_row("Passed", f"[green]{stats['passed']}[/green]")
    table.add_row("Failed", f"[red]{stats['failed']}[/red]")
    table.add_row("Total", str(stats["total"]))
    console.print(table)


@cache_cmd.command("clear")
@click.pass_context
def clear_cmd(ctx):
    """Forget every cached verdict so all files are reviewed again."""
    _file_cache(ctx).clear()
    console.print("[green]Review cache cleared.[/green]")
