"""Shared Typer option definitions for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer


INPUTS_PANEL = "Input Handling"
CONVERSION_PANEL = "Conversion"
OUTPUT_PANEL = "Output"

FormatOption = Annotated[
    str | None,
    typer.Option(
        "--format",
        "-f",
        help="Target markup: 'asciidoc' or 'writerside' (Writerside Markdown).",
        rich_help_panel=CONVERSION_PANEL,
    ),
]

VariableModeOption = Annotated[
    str | None,
    typer.Option(
        "--variables",
        help="Variable handling: 'replace' inlines values, 'reference' keeps references.",
        rich_help_panel=CONVERSION_PANEL,
    ),
]

NamingOption = Annotated[
    str | None,
    typer.Option(
        "--naming",
        help="Reference naming convention: original, camelCase, snake_case or kebab-case.",
        rich_help_panel=CONVERSION_PANEL,
    ),
]

SnippetModeOption = Annotated[
    str | None,
    typer.Option(
        "--snippets",
        help="Snippet handling: 'merge' inlines fragments, 'reference' emits includes.",
        rich_help_panel=CONVERSION_PANEL,
    ),
]

ExcludeConditionOption = Annotated[
    list[str] | None,
    typer.Option(
        "--exclude-condition",
        "-x",
        help="Additional condition pattern to drop. Repeat to add several.",
        rich_help_panel=CONVERSION_PANEL,
    ),
]

IncludeConditionOption = Annotated[
    list[str] | None,
    typer.Option(
        "--include-condition",
        help="Condition tag to keep even when an exclude pattern matches it.",
        rich_help_panel=CONVERSION_PANEL,
    ),
]

VariableFileOption = Annotated[
    list[Path] | None,
    typer.Option(
        "--variable-file",
        help="Explicit FLVAR file to load in addition to discovered ones.",
        exists=True,
        dir_okay=False,
        resolve_path=True,
        rich_help_panel=INPUTS_PANEL,
    ),
]

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="YAML file holding conversion options.",
        exists=True,
        dir_okay=False,
        resolve_path=True,
        rich_help_panel=INPUTS_PANEL,
    ),
]

ParserOption = Annotated[
    str | None,
    typer.Option(
        "--parser",
        help="BeautifulSoup parser backend to use (defaults to 'lxml').",
        rich_help_panel=INPUTS_PANEL,
    ),
]

ConcurrencyOption = Annotated[
    int,
    typer.Option(
        "--concurrency",
        "-j",
        min=1,
        help="Maximum number of documents converted at the same time.",
        rich_help_panel=CONVERSION_PANEL,
    ),
]

IncludeSnippetsOption = Annotated[
    bool,
    typer.Option(
        "--include-snippets",
        help="Also convert standalone .flsnp snippet files.",
        rich_help_panel=INPUTS_PANEL,
    ),
]

__all__ = [
    "CONVERSION_PANEL",
    "INPUTS_PANEL",
    "OUTPUT_PANEL",
    "ConcurrencyOption",
    "ConfigOption",
    "ExcludeConditionOption",
    "FormatOption",
    "IncludeConditionOption",
    "IncludeSnippetsOption",
    "NamingOption",
    "ParserOption",
    "SnippetModeOption",
    "VariableFileOption",
    "VariableModeOption",
]
