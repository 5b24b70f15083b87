"""Core commit review orchestration."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from rich.console import Console

from commitguard_core.batching import PER_FILE_OVERHEAD, Batch, pack
from commitguard_core.config import build_retry_policy, load_rules, read_config_text
from commitguard_core.errors import NON_RETRYABLE, ErrorKind
from commitguard_core.findings import load_ignore, parse_response, reconcile, render_exceptions
from commitguard_core.git import binary_staged_files, read_content
from commitguard_core.models import Finding, ProviderSpec, ReviewStatus, ReviewVerdict
from commitguard_core.render import render_result
from commitguard_core.retry import CoordinatorStatus, RetryCoordinator
from commitguard_core.utils.code import format_file_size, is_code_file, looks_binary, matches_any

logger = logging.getLogger(__name__)

RESPONSE_FORMAT = """\
=== RESPONSE FORMAT ===
The first line of your response must be exactly one of:
STATUS: PASSED
STATUS: FAILED
Report each violation on its own line as:
#<n> <file>:<line> - <description>
Reply STATUS: PASSED only if no file violates the standards."""


@dataclass
class BatchOutcome:
    """One provider request: which files it covered and the reconciled verdict."""

    files: list[str]
    verdict: ReviewVerdict
    passed: bool
    provider: str
    attempts: int = 0
    fallback_used: bool = False
    error: ErrorKind | None = None
    ignored: list[Finding] = field(default_factory=list)

    @property
    def findings(self) -> list[Finding]:
        return self.verdict.findings


@dataclass
class ReviewSummary:
    """Result returned by run_review.

    Decoupled from commitguard_store: the cache is passed in and driven through
    its methods only, so commitguard_core never imports the store layer.
    """

    passed: bool
    reviewed_files: list[str] = field(default_factory=list)
    cached_files: list[str] = field(default_factory=list)
    skipped_files: list[str] = field(default_factory=list)
    batches: list[BatchOutcome] = field(default_factory=list)

    @property
    def findings(self) -> list[Finding]:
        """Findings of all batches, reassembled in batch order."""
        return [finding for outcome in self.batches for finding in outcome.findings]


def build_prompt(
    rules: str,
    files: list[str],
    contents: dict[str, str],
    exceptions: str = "",
    base_branch: str | None = None,
) -> str:
    """Assemble one review prompt: instructions, rules, dismissed findings and framed file contents."""
    parts = ["You are a code reviewer. Review the files below against the CODING STANDARDS."]
    if base_branch:
        parts.append(
            f"These files are the changes of a pull request against `{base_branch}`. "
            "Review them together as one change set."
        )
    parts.append(f"=== CODING STANDARDS ===\n{rules.strip()}\n=== END CODING STANDARDS ===")
    if exceptions:
        parts.append(exceptions)
    parts.append(RESPONSE_FORMAT)
    parts.append("=== FILES TO REVIEW ===")
    for path in files:
        parts.append(f"=== FILE: {path} ===\n{contents[path]}\n=== END FILE ===")
    return "\n\n".join(parts)


def select_files(
    files: list[str],
    config: dict,
    use_staged: bool,
    console: Console,
) -> tuple[list[str], list[str], dict[str, bytes]]:
    """Split candidates into reviewable and skipped files, reading each reviewable one once.

    Returns ``(reviewable, skipped, contents)``; ``contents`` holds the raw bytes
    of every reviewable file.
    """
    patterns = config.get("file_patterns") or ["*"]
    exclude = config.get("exclude_patterns") or []
    max_file_size = int(config.get("max_file_size") or 0)
    binaries = binary_staged_files() if use_staged else set()

    reviewable: list[str] = []
    skipped: list[str] = []
    contents: dict[str, bytes] = {}

    for path in files:
        if not matches_any(path, patterns) or matches_any(path, exclude):
            logger.debug("Skipping %s (excluded by config)", path)
            skipped.append(path)
            continue
        if path in binaries or not is_code_file(path):
            logger.debug("Skipping %s (binary or non-code file)", path)
            skipped.append(path)
            continue

        content = read_content(path, use_staged)
        if content is None:
            logger.debug("Skipping %s (no content)", path)
            skipped.append(path)
            continue
        if looks_binary(content):
            logger.debug("Skipping %s (binary content)", path)
            skipped.append(path)
            continue
        if max_file_size and len(content) > max_file_size:
            console.print(
                f"[yellow]Skipping {path}: {format_file_size(len(content))} exceeds "
                f"max_file_size ({format_file_size(max_file_size)})[/yellow]"
            )
            skipped.append(path)
            continue

        reviewable.append(path)
        contents[path] = content

    return reviewable, skipped, contents


def _effective_verdict(verdict: ReviewVerdict, strict_mode: bool, console: Console) -> bool:
    if verdict.status is ReviewStatus.PASSED:
        return True
    if verdict.status is ReviewStatus.FAILED:
        return False
    if strict_mode:
        console.print("[red]Provider response had no STATUS line; failing (strict_mode is on).[/red]")
        return False
    console.print("[yellow]Provider response had no STATUS line; passing because strict_mode is off.[/yellow]")
    return True


def run_review(
    files: list[str],
    config: dict,
    cache,
    use_staged: bool = True,
    console: Console | None = None,
    base_branch: str | None = None,
    coordinator: RetryCoordinator | None = None,
) -> ReviewSummary:
    """Review ``files`` and return a ReviewSummary.

    ``cache`` is any commitguard_store cache (FileCache, NoOpCache). Batches
    run one after another; the cache is written only from this thread and
    flushed once at the end.
    """
    console = console if console is not None else Console(stderr=True)
    rules = load_rules(config)
    ignore_entries = load_ignore(config.get("ignore_file") or ".commitguard-ignore")

    reviewable, skipped, raw_contents = select_files(files, config, use_staged, console)
    if not reviewable:
        console.print("[yellow]No reviewable files.[/yellow]")
        return ReviewSummary(passed=True, skipped_files=skipped)

    hashes = {path: cache.content_hash(raw_contents[path]) for path in reviewable}
    cache.prepare(cache.rules_hash(rules, read_config_text(config)))
    to_review, cached = cache.filter_uncached(reviewable, hashes.__getitem__)
    if cached:
        console.print(f"[dim]{len(cached)} file(s) unchanged since they last passed review (cached).[/dim]")
    if not to_review:
        console.print("[green]All files passed review previously. Nothing to do.[/green]")
        return ReviewSummary(passed=True, cached_files=cached, skipped_files=skipped)

    contents = {path: raw_contents[path].decode("utf-8", errors="replace") for path in to_review}
    batches = pack(
        to_review,
        int(config.get("max_prompt_bytes") or 0),
        rules_text=rules,
        sizer=lambda path: len(raw_contents[path]) + PER_FILE_OVERHEAD + len(path),
    )

    spec = ProviderSpec.parse(config["provider"])
    if coordinator is None:
        coordinator = RetryCoordinator(
            build_retry_policy(config),
            timeout=float(config["timeout"]),
            console=console,
            progress_interval=float(config.get("progress_interval") or 15),
        )
    exceptions = render_exceptions(ignore_entries)
    strict_mode = bool(config.get("strict_mode", True))

    outcomes: list[BatchOutcome] = []
    try:
        for number, batch in enumerate(batches, start=1):
            if len(batches) > 1:
                console.print(f"[cyan]Batch {number}/{len(batches)}: {len(batch)} file(s)[/cyan]")
            outcome = _review_batch(
                batch, spec, coordinator, rules, contents, exceptions, ignore_entries, strict_mode, base_branch, console
            )
            outcomes.append(outcome)
            status = ReviewStatus.PASSED if outcome.passed else ReviewStatus.FAILED
            for path in outcome.files:
                cache.record(path, hashes[path], status.value)
            if outcome.error in NON_RETRYABLE:
                # Every remaining batch would fail the same way.
                break
    finally:
        cache.flush()

    return ReviewSummary(
        passed=all(o.passed for o in outcomes),
        reviewed_files=[path for o in outcomes for path in o.files],
        cached_files=cached,
        skipped_files=skipped,
        batches=outcomes,
    )


def _review_batch(
    batch: Batch,
    spec: ProviderSpec,
    coordinator: RetryCoordinator,
    rules: str,
    contents: dict[str, str],
    exceptions: str,
    ignore_entries,
    strict_mode: bool,
    base_branch: str | None,
    console: Console,
) -> BatchOutcome:
    files = list(batch.files)
    prompt = build_prompt(rules, files, contents, exceptions, base_branch)
    result = coordinator.run(spec, prompt)

    if not result.succeeded:
        if result.status is CoordinatorStatus.FATAL:
            console.print(f"[red]Provider {spec} cannot run: {result.output}[/red]")
        else:
            console.print(f"[red]Review failed: no provider produced a response ({result.status.value}).[/red]")
        return BatchOutcome(
            files=files,
            verdict=ReviewVerdict(status=ReviewStatus.FAILED, raw_output=result.output),
            passed=False,
            provider=str(result.provider),
            attempts=result.attempts,
            fallback_used=result.fallback_used,
            error=result.error,
        )

    if result.fallback_used:
        console.print(f"[yellow]Reviewed with fallback provider {result.provider}.[/yellow]")
    render_result(result.output, console)

    verdict, ignored = reconcile(parse_response(result.output), ignore_entries)
    if ignored:
        console.print(f"[dim]Ignored {len(ignored)} finding(s) dismissed in the ignore file.[/dim]")
    return BatchOutcome(
        files=files,
        verdict=verdict,
        passed=_effective_verdict(verdict, strict_mode, console),
        provider=str(result.provider),
        attempts=result.attempts,
        fallback_used=result.fallback_used,
        ignored=ignored,
    )
