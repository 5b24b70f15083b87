"""Terminal rendering of provider verdicts."""

from __future__ import annotations

from rich.console import Console
from rich.text import Text

from commitguard_core.findings import FINDING_RE, STATUS_RE


def style_line(line: str) -> Text:
    status = STATUS_RE.match(line)
    if status:
        return Text(line, style="bold green" if status.group(1).upper() == "PASSED" else "bold red")
    match = FINDING_RE.match(line.strip())
    if match:
        number, file_ref, rest = match.groups()
        return Text.assemble((f"#{number}", "yellow"), " ", (file_ref, "cyan"), rest)
    return Text(line)


def render_result(output: str, console: Console) -> None:
    """Print a provider response: colorized between rules on a terminal, verbatim otherwise."""
    if not console.is_terminal:
        console.print(output, markup=False, highlight=False, soft_wrap=True)
        return

    console.rule("[bold]Review Result[/bold]", style="cyan")
    console.print()
    for line in output.splitlines():
        console.print(style_line(line), highlight=False, soft_wrap=True)
    console.print()
    console.rule(style="cyan")
