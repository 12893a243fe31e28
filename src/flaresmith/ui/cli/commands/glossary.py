"""Implementation of the `flaresmith glossary` command."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from flaresmith.adapters.markup.renderer import formatter_for
from flaresmith.core.conditions import ConditionMatcher
from flaresmith.core.exceptions import FlareSmithError, exception_hint
from flaresmith.core.glossary import load_glossary, render_glossary

from .._options import (
    INPUTS_PANEL,
    OUTPUT_PANEL,
    ConfigOption,
    ExcludeConditionOption,
    FormatOption,
    IncludeConditionOption,
)
from ..state import emit_error
from ..utils import build_cli_options


def glossary(
    source: Annotated[
        Path,
        typer.Argument(
            metavar="FILE.flglo",
            help="Flare glossary file to render.",
            exists=True,
            dir_okay=False,
            readable=True,
            resolve_path=True,
            rich_help_panel=INPUTS_PANEL,
        ),
    ],
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="File receiving the glossary. Defaults to stdout.",
            rich_help_panel=OUTPUT_PANEL,
        ),
    ] = None,
    title: Annotated[
        str,
        typer.Option("--title", help="Heading placed above the definition list."),
    ] = "Glossary",
    output_format: FormatOption = None,
    exclude_conditions: ExcludeConditionOption = None,
    include_conditions: IncludeConditionOption = None,
    config: ConfigOption = None,
) -> None:
    """Render a glossary as an AsciiDoc glossary list or a Writerside deflist."""
    try:
        options = build_cli_options(
            config=config,
            output_format=output_format,
            exclude_conditions=exclude_conditions,
            include_conditions=include_conditions,
        )
    except FlareSmithError as exc:
        raise typer.BadParameter(exception_hint(exc) or str(exc)) from exc

    try:
        entries = load_glossary(source, ConditionMatcher(options.conditions))
    except FlareSmithError as exc:
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc

    content = render_glossary(entries, formatter_for(options), title=title or None)
    if output is None:
        typer.echo(content, nl=False)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(content, encoding="utf-8")


__all__ = ["glossary"]
