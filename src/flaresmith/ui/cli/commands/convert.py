"""Implementation of the `flaresmith convert` command."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from flaresmith.api.service import ConversionService
from flaresmith.core.exceptions import FlareSmithError, exception_hint

from .._options import (
    INPUTS_PANEL,
    OUTPUT_PANEL,
    ConfigOption,
    ExcludeConditionOption,
    FormatOption,
    IncludeConditionOption,
    NamingOption,
    ParserOption,
    SnippetModeOption,
    VariableFileOption,
    VariableModeOption,
)
from ..diagnostics import CliEmitter
from ..presenter import present_conversion_summary
from ..state import debug_enabled, emit_error, emit_warning, get_cli_state
from ..utils import build_cli_options, resolve_output_target


def convert(
    inputs: Annotated[
        list[Path],
        typer.Argument(
            metavar="INPUT...",
            help="Flare topic or snippet files (.htm, .html, .xhtml, .flsnp).",
            exists=True,
            file_okay=True,
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
            help="Output file, or directory for several inputs. Defaults to stdout.",
            rich_help_panel=OUTPUT_PANEL,
        ),
    ] = None,
    output_format: FormatOption = None,
    variable_mode: VariableModeOption = None,
    naming: NamingOption = None,
    snippet_mode: SnippetModeOption = None,
    exclude_conditions: ExcludeConditionOption = None,
    include_conditions: IncludeConditionOption = None,
    variable_files: VariableFileOption = None,
    config: ConfigOption = None,
    parser: ParserOption = None,
) -> None:
    """Convert Flare documents into AsciiDoc or Writerside Markdown."""
    state = get_cli_state()

    try:
        options = build_cli_options(
            config=config,
            output_format=output_format,
            variable_mode=variable_mode,
            naming=naming,
            snippet_mode=snippet_mode,
            exclude_conditions=exclude_conditions,
            include_conditions=include_conditions,
            variable_files=variable_files,
            parser=parser,
        )
    except FlareSmithError as exc:
        raise typer.BadParameter(exception_hint(exc) or str(exc)) from exc

    if len(inputs) > 1 and output is not None and output.suffix and not output.is_dir():
        raise typer.BadParameter("Several inputs require --output to be a directory.")

    service = ConversionService(options, emitter=CliEmitter(state))
    chunks: list[str] = []
    for source in inputs:
        try:
            result = service.convert_file(source)
        except FlareSmithError as exc:
            if debug_enabled():
                raise
            emit_error(f"Failed to convert {source}: {exc}", exception=exc)
            raise typer.Exit(code=1) from exc

        for message in result.warnings:
            emit_warning(message)

        target = resolve_output_target(source, output, options)
        if target is None:
            chunks.append(result.content)
            if result.variables_file:
                emit_warning(
                    f"Variables file {result.variables_filename} is only written with --output."
                )
            continue

        written = service.write_result(result, target)
        present_conversion_summary(state=state, result=result, written=written)

    if chunks:
        typer.echo("\n".join(chunks), nl=False)


__all__ = ["convert"]
