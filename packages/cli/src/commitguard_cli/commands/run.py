"""run command: review changed files and gate the commit on the verdict."""

from __future__ import annotations

import click
from rich.console import Console

from commitguard_core.errors import CommitguardError
from commitguard_core.git import detect_base_branch, pr_files, staged_files
from commitguard_core.reviewer import ReviewSummary, run_review

console = Console(stderr=True)


def _print_summary(summary: ReviewSummary) -> None:
    parts = [f"{len(summary.reviewed_files)} reviewed"]
    if summary.cached_files:
        parts.append(f"{len(summary.cached_files)} cached")
    if summary.skipped_files:
        parts.append(f"{len(summary.skipped_files)} skipped")
    counts = ", ".join(parts)

    if summary.passed:
        console.print(f"[bold green]Review passed[/bold green] ({counts})")
        return

    console.print(f"[bold red]Review failed[/bold red] ({counts})")
    for finding in summary.findings:
        console.print(f"  [yellow]#{finding.index}[/yellow] [cyan]{finding.file_ref}[/cyan]")
    console.print(
        "[dim]Fix the findings, or dismiss a false positive with: "
        "commitguard ignore add <file:line> --reason <why>[/dim]"
    )


@click.command("run")
@click.argument("files", nargs=-1)
@click.option("--provider", default=None, help="Provider to review with (name or name:model). Overrides config.")
@click.option("--fallback", "fallback_provider", default=None, help="Fallback provider when the primary fails.")
@click.option("--pr-mode", is_flag=True, help="Review every file changed on this branch instead of staged files.")
@click.option("--base", "base_branch", default=None, help="Base branch for --pr-mode. Auto-detected if omitted.")
@click.option("--no-cache", is_flag=True, help="Review every file, ignoring previously passed results.")
@click.option(
    "--working-tree",
    is_flag=True,
    help="Read file contents from the working tree instead of the staged index.",
)
@click.pass_context
def run_cmd(
    ctx,
    files: tuple[str, ...],
    provider: str | None,
    fallback_provider: str | None,
    pr_mode: bool,
    base_branch: str | None,
    no_cache: bool,
    working_tree: bool,
):
    """Review changes with the configured AI provider.

    Without FILES, reviews the staged files (or, with --pr-mode, every file
    changed relative to the base branch). Exits with status 1 when the review
    fails, so it can gate a pre-commit hook.

    \b
    Environment variables:
      ANTHROPIC_API_KEY    Required for provider anthropic
      OPENAI_API_KEY       Required for provider openai
      GITHUB_TOKEN         Used by provider github (or use gh CLI)
      OLLAMA_HOST          Ollama server (default http://localhost:11434)
      LMSTUDIO_HOST        LM Studio server (default http://localhost:1234)
    """
    from commitguard_cli.cli import _build_cache

    config = dict(ctx.obj["config"])
    for key, value in {"provider": provider, "fallback_provider": fallback_provider}.items():
        if value is not None:
            config[key] = value

    cache = _build_cache(config, no_cache=True) if no_cache else ctx.obj["cache"]
    use_staged = not (working_tree or pr_mode)

    try:
        if files:
            candidates = list(files)
        elif pr_mode:
            base_branch = base_branch or detect_base_branch()
            candidates = pr_files(base_branch)
        else:
            candidates = staged_files()

        if not candidates:
            console.print("[yellow]No files to review.[/yellow]")
            return

        summary = run_review(
            files=candidates,
            config=config,
            cache=cache,
            use_staged=use_staged,
            console=console,
            base_branch=base_branch if pr_mode else None,
        )
    except (CommitguardError, FileNotFoundError, ValueError) as e:
        raise click.ClickException(str(e))

    _print_summary(summary)
    if not summary.passed:
        ctx.exit(1)
