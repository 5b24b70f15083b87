"""Provider verdict parsing and the ignore list (dismissed findings).

Providers answer in free text. The only structure relied on is:

    STATUS: PASSED | STATUS: FAILED        (optionally **bold**)
    #<index> <file_ref> <anything else>     (one line per finding)

Everything else in the response is prose and is carried along untouched in
ReviewVerdict.raw_output. Keeping this grammar in one module means prose
variance between providers cannot leak into batching, caching or the CLI.

The ignore file is injected into prompts as advisory context, but findings
are filtered here afterwards regardless: a model that ignores the
instruction still cannot fail a commit on a dismissed finding.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from commitguard_core.models import Finding, IgnoreEntry, ReviewStatus, ReviewVerdict

logger = logging.getLogger(__name__)

DEFAULT_IGNORE_FILE = ".commitguard-ignore"

IGNORE_FILE_HEADER = "# .commitguard-ignore - Dismissed review findings\n# Format: file:line  # reason\n\n"

EXCEPTIONS_START = "=== EXCEPTIONS (do not flag these) ==="
EXCEPTIONS_END = "=== END EXCEPTIONS ==="

STATUS_RE = re.compile(r"^\s*\*{0,2}\s*STATUS:\s*(PASSED|FAILED)\b", re.IGNORECASE)
FINDING_RE = re.compile(r"^#(\d+)\s(\S+)(.*)$")

_COMMENT = "#"
_ESCAPED_COMMENT = "\\#"


# ---------------------------------------------------------------------------
# Provider responses
# ---------------------------------------------------------------------------


def parse_response(text: str) -> ReviewVerdict:
    """Scan a provider response once, collecting the first STATUS line and every finding."""
    status = ReviewStatus.UNKNOWN
    findings: list[Finding] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if status is ReviewStatus.UNKNOWN:
            status_match = STATUS_RE.match(line)
            if status_match:
                status = ReviewStatus(status_match.group(1).upper())
                continue
        finding_match = FINDING_RE.match(line)
        if finding_match:
            findings.append(Finding(index=int(finding_match.group(1)), file_ref=finding_match.group(2), raw_line=line))
    return ReviewVerdict(status=status, findings=findings, raw_output=text)


# ---------------------------------------------------------------------------
# Ignore list
# ---------------------------------------------------------------------------


def _split_comment(line: str) -> tuple[str, str]:
    """Split at the first unescaped ``#``; ``\\#`` stays a literal ``#`` in the file ref."""
    ref: list[str] = []
    i = 0
    while i < len(line):
        if line.startswith(_ESCAPED_COMMENT, i):
            ref.append(_COMMENT)
            i += len(_ESCAPED_COMMENT)
            continue
        if line[i] == _COMMENT:
            return "".join(ref).strip(), line[i + 1 :].strip()
        ref.append(line[i])
        i += 1
    return "".join(ref).strip(), ""


def parse_ignore(text: str) -> list[IgnoreEntry]:
    entries = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith(_COMMENT):
            continue
        file_ref, reason = _split_comment(line)
        if file_ref:
            entries.append(IgnoreEntry(file_ref=file_ref, reason=reason))
    return entries


def render_ignore(entries: list[IgnoreEntry], header: bool = True) -> str:
    lines = [IGNORE_FILE_HEADER] if header else []
    for entry in entries:
        lines.append(_render_entry(entry))
    return "".join(lines)


def _render_entry(entry: IgnoreEntry) -> str:
    file_ref = entry.file_ref.replace(_COMMENT, _ESCAPED_COMMENT)
    if entry.reason:
        return f"{file_ref}  # {entry.reason}\n"
    return f"{file_ref}\n"


def load_ignore(path: str | Path = DEFAULT_IGNORE_FILE) -> list[IgnoreEntry]:
    """Read the ignore file; a missing or unreadable file means no ignores, never an error."""
    path = Path(path)
    if not path.exists():
        return []
    try:
        return parse_ignore(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Could not read ignore file %s, continuing without ignores: %s", path, e)
        return []


def add_ignore(path: str | Path, file_ref: str, reason: str = "") -> IgnoreEntry:
    path = Path(path)
    entry = IgnoreEntry(file_ref=file_ref.strip(), reason=reason.strip())
    if not path.exists():
        path.write_text(IGNORE_FILE_HEADER, encoding="utf-8")
    existing = path.read_text(encoding="utf-8")
    with open(path, "a", encoding="utf-8") as f:
        if existing and not existing.endswith("\n"):
            f.write("\n")
        f.write(_render_entry(entry))
    return entry


def is_ignored(file_ref: str, entries: list[IgnoreEntry]) -> bool:
    """Exact match only: ``a.ts:10`` does not cover ``a.ts:1``, ``a.ts:100`` or ``b.ts:10``."""
    return any(entry.file_ref == file_ref for entry in entries)


def render_exceptions(entries: list[IgnoreEntry]) -> str:
    """Prompt block listing dismissed findings; empty when there are none."""
    if not entries:
        return ""
    lines = [EXCEPTIONS_START]
    for entry in entries:
        if entry.reason:
            lines.append(f"- {entry.file_ref} (reason: {entry.reason})")
        else:
            lines.append(f"- {entry.file_ref}")
    lines.append(EXCEPTIONS_END)
    return "\n".join(lines)


def reconcile(verdict: ReviewVerdict, entries: list[IgnoreEntry]) -> tuple[ReviewVerdict, list[Finding]]:
    """Drop ignored findings and derive the effective status.

    When the provider reported findings and every one of them is ignored the
    effective status is PASSED, whatever the provider's STATUS line said.
    Returns the reconciled verdict and the findings that were filtered out.
    """
    ignored_refs = {entry.file_ref for entry in entries}
    kept = [f for f in verdict.findings if f.file_ref not in ignored_refs]
    dropped = [f for f in verdict.findings if f.file_ref in ignored_refs]

    status = verdict.status
    if verdict.findings and not kept:
        status = ReviewStatus.PASSED
    if dropped:
        logger.info("Filtered %d ignored finding(s)", len(dropped))
    return ReviewVerdict(status=status, findings=kept, raw_output=verdict.raw_output), dropped
