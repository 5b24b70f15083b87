"""ignore command: manage dismissed review findings."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from commitguard_core.findings import add_ignore, load_ignore

console = Console()


def _ignore_path(ctx) -> Path:
    return Path(ctx.obj["config"].get("ignore_file") or ".commitguard-ignore")


@click.group("ignore")
def ignore_cmd():
    """Dismiss findings so future reviews stop failing on them.

    Entries are exact file:line references as printed in a review, e.g.
    ``src/db/query.sql:42``.
    """


@ignore_cmd.command("list")
@click.pass_context
def list_cmd(ctx):
    """Show dismissed findings."""
    path = _ignore_path(ctx)
    entries = load_ignore(path)
    if not entries:
        console.print(f"[yellow]No dismissed findings in {path}.[/yellow]")
        return

    table = Table(title=f"Dismissed findings in {path}", show_header=True, header_style="bold cyan")
    table.add_column("Finding", style="bold")
    table.add_column("Reason")
    for entry in entries:
        table.add_row(entry.file_ref, entry.reason or "[dim]-[/dim]")
    console.print(table)


@ignore_cmd.command("add")
@click.argument("file_ref")
@click.option("--reason", "-r", default="", help="Why this finding is dismissed.")
@click.pass_context
def add_cmd(ctx, file_ref: str, reason: str):
    """Dismiss FILE_REF (file:line) in future reviews."""
    path = _ignore_path(ctx)
    if not file_ref.strip():
        raise click.UsageError("FILE_REF must not be empty.")
    if any(entry.file_ref == file_ref.strip() for entry in load_ignore(path)):
        console.print(f"[yellow]{file_ref} is already dismissed.[/yellow]")
        return
    entry = add_ignore(path, file_ref, reason)
    console.print(f"[green]Dismissed {entry.file_ref}[/green] in {path}")


@ignore_cmd.command("clear")
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def clear_cmd(ctx, yes: bool):
    """Remove the ignore file."""
    path = _ignore_path(ctx)
    if not path.exists():
        console.print(f"[yellow]{path} does not exist.[/yellow]")
        return
    if not yes:
        click.confirm(f"Delete {path} and all dismissed findings?", abort=True)
    path.unlink()
    console.print(f"[green]Removed {path}[/green]")
