"""Implementation of the `flaresmith batch` command."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from flaresmith.api.batch import DEFAULT_CONCURRENCY
from flaresmith.api.service import ConversionService
from flaresmith.core.exceptions import FlareSmithError, exception_hint

from .._options import (
    INPUTS_PANEL,
    OUTPUT_PANEL,
    ConcurrencyOption,
    ConfigOption,
    ExcludeConditionOption,
    FormatOption,
    IncludeConditionOption,
    IncludeSnippetsOption,
    NamingOption,
    ParserOption,
    SnippetModeOption,
    VariableFileOption,
    VariableModeOption,
)
from ..diagnostics import CliEmitter
from ..presenter import present_batch_summary
from ..state import get_cli_state
from ..utils import build_cli_options


def batch(
    input_dir: Annotated[
        Path,
        typer.Argument(
            help="Directory holding the Flare content tree.",
            exists=True,
            file_okay=False,
            dir_okay=True,
            resolve_path=True,
            rich_help_panel=INPUTS_PANEL,
        ),
    ],
    output_dir: Annotated[
        Path,
        typer.Argument(
            help="Directory receiving the converted tree.",
            file_okay=False,
            resolve_path=True,
            rich_help_panel=OUTPUT_PANEL,
        ),
    ],
    concurrency: ConcurrencyOption = DEFAULT_CONCURRENCY,
    include_snippets: IncludeSnippetsOption = False,
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
    """Convert every topic below INPUT_DIR into OUTPUT_DIR."""
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

    service = ConversionService(options, emitter=CliEmitter(state))
    result = service.convert_batch(
        input_dir,
        output_dir,
        concurrency=concurrency,
        include_snippets=include_snippets,
    )
    present_batch_summary(state=state, result=result)
    if result.errors:
        raise typer.Exit(code=1)


__all__ = ["batch"]
