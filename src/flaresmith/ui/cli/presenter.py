"""Rich-aware presenters for CLI output and diagnostics."""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from rich import box
from rich.table import Table
from rich.text import Text

from flaresmith.api.batch import BatchResult
from flaresmith.api.service import ConversionResult
from flaresmith.core.conditions import ConditionMatcher

from .state import CLIState


if TYPE_CHECKING:  # pragma: no cover - typing only
    from rich.console import Console


def _get_console(state: CLIState, *, stderr: bool = False) -> Console | None:
    """Return the active console when it is attached to a terminal."""
    console = state.err_console if stderr else state.console
    if getattr(console, "is_terminal", False):
        return console
    return None


def _build_table(*, title: str | None, columns: Sequence[str]) -> Table:
    """Create a Rich table with the house style."""
    table = Table(
        title=title or None,
        box=box.SQUARE,
        show_edge=True,
        header_style="bold cyan",
    )
    for column in columns:
        table.add_column(column)
    return table


def _format_path(path: Path) -> str:
    """Format a path relative to the current working directory for display."""
    resolved = path.resolve()
    try:
        return str(resolved.relative_to(Path.cwd()))
    except ValueError:
        return str(resolved)


def present_conversion_summary(
    *,
    state: CLIState,
    result: ConversionResult,
    written: Sequence[Path],
) -> None:
    """Describe the files written by a single conversion."""
    console = _get_console(state, stderr=True)
    if console is None:
        return

    metadata = result.metadata
    table = _build_table(title="Conversion summary", columns=("Artifact", "Location", "Details"))
    for index, path in enumerate(written):
        artifact = "Document" if index == 0 else "Variables"
        details = f"{metadata.word_count} words" if index == 0 else ""
        table.add_row(artifact, _format_path(path), details)
    if metadata.broken_links:
        table.add_row("Broken links", str(len(metadata.broken_links)), "")
    if metadata.warnings:
        table.add_row("Warnings", str(len(metadata.warnings)), "")
    console.print(table)


def present_batch_summary(*, state: CLIState, result: BatchResult) -> None:
    """Summarise a batch run; failures are always listed."""
    console = state.err_console
    if result.errors:
        table = _build_table(title="Failed documents", columns=("Document", "Error"))
        for error in result.errors:
            table.add_row(_format_path(error.path), Text(error.message, style="red"))
        console.print(table)

    line = (
        f"Converted {result.converted} document(s), "
        f"{result.failed} failed, {result.skipped} skipped."
    )
    if result.variables_file is not None:
        line += f" Variables written to {_format_path(result.variables_file)}."
    console.print(line)


def present_condition_usage(
    *,
    state: CLIState,
    usage: Counter[str],
    matcher: ConditionMatcher,
) -> None:
    """Print every condition tag, its usage count and the policy verdict."""
    table = _build_table(title="Condition tags", columns=("Condition", "Uses", "Action"))
    for tag, count in sorted(usage.items(), key=lambda item: (-item[1], item[0].lower())):
        excluded = matcher.first_excluded([tag]) is not None
        action = Text("drop", style="red") if excluded else Text("keep", style="green")
        table.add_row(tag, str(count), action)
    state.console.print(table)


__all__ = [
    "present_batch_summary",
    "present_condition_usage",
    "present_conversion_summary",
]
