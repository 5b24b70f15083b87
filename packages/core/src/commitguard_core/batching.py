"""Split the files under review into prompts that fit a provider's size limit.

Packing is greedy in input order, never sorted by size: the same file list
always yields the same batches, and findings come back in the order the files
were given. A file too large for any batch still gets reviewed, alone.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable

from commitguard_core.git import read_content

# Fixed part of every prompt: instructions, output format and exception markers.
BASE_PROMPT_OVERHEAD = 700
# "=== FILE: <path> ===" framing plus separators around each file's content.
PER_FILE_OVERHEAD = 30


@dataclass(frozen=True)
class Batch:
    files: tuple[str, ...]
    size: int  # estimated bytes of the file sections, excluding the fixed overhead

    def __iter__(self):
        return iter(self.files)

    def __len__(self) -> int:
        return len(self.files)


def estimate(path: str, use_staged: bool = False, cwd: str | None = None) -> int:
    content = read_content(path, use_staged, cwd)
    content_size = len(content) if content is not None else 0
    return content_size + PER_FILE_OVERHEAD + len(path)


def overhead(rules_text: str) -> int:
    return BASE_PROMPT_OVERHEAD + len(rules_text.encode("utf-8"))


def pack(
    files: Iterable[str],
    max_bytes: int | None,
    rules_text: str = "",
    use_staged: bool = False,
    sizer: Callable[[str], int] | None = None,
) -> list[Batch]:
    """Group ``files`` into ordered batches of at most ``max_bytes`` estimated prompt bytes.

    ``max_bytes`` of None or 0 means no limit: one batch with every file.
    """
    files = list(files)
    if not files:
        return []
    sizer = sizer or (lambda path: estimate(path, use_staged))

    if not max_bytes:
        return [Batch(files=tuple(files), size=sum(sizer(path) for path in files))]

    available = max_bytes - overhead(rules_text)
    batches: list[Batch] = []
    current: list[str] = []
    current_size = 0

    for path in files:
        file_size = sizer(path)
        if current and current_size + file_size > available:
            batches.append(Batch(files=tuple(current), size=current_size))
            current, current_size = [], 0
        current.append(path)
        current_size += file_size

    if current:
        batches.append(Batch(files=tuple(current), size=current_size))
    return batches


def flatten(batches: Iterable[Batch]) -> list[str]:
    return [path for batch in batches for path in batch.files]
