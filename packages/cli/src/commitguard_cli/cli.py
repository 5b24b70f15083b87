"""CLI entry point for commitguard.

Commands:
  run     review staged (or PR) changes and gate the commit on the verdict
  ignore  list, add and clear dismissed findings
  cache   inspect or clear the review cache
  init    write a starter .commitguard.yml
"""

from __future__ import annotations

import importlib.metadata
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from commitguard_cli.commands.cache import cache_cmd
from commitguard_cli.commands.ignore import ignore_cmd
from commitguard_cli.commands.init import init_cmd
from commitguard_cli.commands.run import run_cmd

console = Console(stderr=True)


def _build_cache(config: dict, no_cache: bool = False):
    """Instantiate the review cache for the current repository.

    Cache selection:
      cache: false or --no-cache → NoOpCache (every file reviewed every run)
      (default)                  → FileCache keyed by the repository root

    This factory lives in cli.py so neither commitguard_core nor
    commitguard_store know about the CLI config format.
    """
    from commitguard_store.noop import NoOpCache

    if no_cache or not config.get("cache", True):
        return NoOpCache()

    from commitguard_core.git import GitError, repo_root
    from commitguard_store.file import FileCache

    try:
        root = repo_root()
    except GitError:
        root = Path.cwd()
    return FileCache(repo_root=root, cache_dir=config.get("cache_dir"))


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=verbose, markup=False)],
        force=True,
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("commitguard"),
    prog_name="commitguard",
)
@click.option(
    "--config",
    "config_path",
    default=".commitguard.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="COMMITGUARD_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """AI code review gate for git commits."""
    from commitguard_core.config import load_config

    _configure_logging(verbose)
    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except (ValueError, OSError) as e:
        raise click.ClickException(f"Could not load {config_path}: {e}")

    cache = _build_cache(config)
    ctx.obj["config"] = config
    ctx.obj["config_path"] = config_path
    ctx.obj["cache"] = cache
    ctx.call_on_close(cache.close)


main.add_command(run_cmd)
main.add_command(ignore_cmd)
main.add_command(cache_cmd)
main.add_command(init_cmd)
