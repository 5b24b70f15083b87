"""Thin wrappers over the git CLI for selecting and reading files to review.

Staged mode reads blobs from the index (`git show :path`) rather than the
working tree: the commit being gated is what is staged, and a file edited
again after `git add` must be reviewed as staged.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from commitguard_core.errors import CommitguardError

logger = logging.getLogger(__name__)

_BASE_BRANCH_CANDIDATES = ("main", "master", "develop")


class GitError(CommitguardError):
    pass


def _git(args: list[str], cwd: str | None = None) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(["git", *args], capture_output=True, cwd=cwd, check=False)
    except FileNotFoundError:
        raise GitError("git is not installed or not on PATH.")


def _git_text(args: list[str], cwd: str | None = None) -> str:
    result = _git(args, cwd)
    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace").strip()
        raise GitError(f"git {' '.join(args)} failed: {stderr}")
    return result.stdout.decode("utf-8", errors="replace")


def _lines(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


def repo_root(cwd: str | None = None) -> Path:
    return Path(_git_text(["rev-parse", "--show-toplevel"], cwd).strip())


def staged_files(cwd: str | None = None) -> list[str]:
    """Added, copied and modified paths in the index, in git's order."""
    return _lines(_git_text(["diff", "--cached", "--name-only", "--diff-filter=ACM"], cwd))


def binary_staged_files(cwd: str | None = None) -> set[str]:
    """Staged paths git itself classifies as binary (numstat reports ``-\t-``)."""
    binaries = set()
    for line in _git_text(["diff", "--cached", "--numstat", "--diff-filter=ACM"], cwd).splitlines():
        parts = line.split("\t", 2)
        if len(parts) == 3 and parts[0] == "-" and parts[1] == "-":
            binaries.add(parts[2])
    return binaries


def read_content(path: str, use_staged: bool, cwd: str | None = None) -> bytes | None:
    """Return the reviewed content of ``path``, or None when it does not exist."""
    if use_staged:
        result = _git(["show", f":{path}"], cwd)
        if result.returncode != 0:
            logger.debug("No staged content for %s", path)
            return None
        return result.stdout
    file_path = Path(cwd, path) if cwd else Path(path)
    try:
        return file_path.read_bytes()
    except OSError:
        return None


def detect_base_branch(cwd: str | None = None) -> str:
    branches = {line.lstrip("* ").strip() for line in _lines(_git_text(["branch", "--list"], cwd))}
    for candidate in _BASE_BRANCH_CANDIDATES:
        if candidate in branches:
            return candidate
    raise GitError("Could not detect base branch (looked for main, master, develop). Pass --base explicitly.")


def pr_files(base_branch: str | None = None, cwd: str | None = None) -> list[str]:
    """Paths changed on this branch relative to its merge base with ``base_branch``."""
    base = base_branch or detect_base_branch(cwd)
    return _lines(_git_text(["diff", "--name-only", "--diff-filter=ACM", f"{base}...HEAD"], cwd))
