"""Implementation of the `flaresmith conditions` command."""

from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import Annotated

import typer

from flaresmith.api.batch import discover_inputs
from flaresmith.core.conditions import ConditionMatcher, collect_conditions
from flaresmith.core.exceptions import FlareSmithError, exception_hint
from flaresmith.core.parsing import parse_html

from .._options import INPUTS_PANEL, ConfigOption, ExcludeConditionOption, IncludeConditionOption
from ..presenter import present_condition_usage
from ..state import emit_warning, get_cli_state
from ..utils import build_cli_options


def conditions(
    inputs: Annotated[
        list[Path],
        typer.Argument(
            metavar="INPUT...",
            help="Documents or directories to scan for condition tags.",
            exists=True,
            resolve_path=True,
            rich_help_panel=INPUTS_PANEL,
        ),
    ],
    exclude_conditions: ExcludeConditionOption = None,
    include_conditions: IncludeConditionOption = None,
    config: ConfigOption = None,
) -> None:
    """List condition tags with usage counts and whether they would be dropped."""
    state = get_cli_state()
    try:
        options = build_cli_options(
            config=config,
            exclude_conditions=exclude_conditions,
            include_conditions=include_conditions,
        )
    except FlareSmithError as exc:
        raise typer.BadParameter(exception_hint(exc) or str(exc)) from exc

    usage: Counter[str] = Counter()
    for entry in inputs:
        for document in discover_inputs(entry, include_snippets=True):
            try:
                html = document.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                emit_warning(f"Skipping {document}: {exc}")
                continue
            usage.update(collect_conditions(parse_html(html, options.parser)))

    if not usage:
        typer.echo("No condition tags found.")
        return

    present_condition_usage(
        state=state, usage=usage, matcher=ConditionMatcher(options.conditions)
    )


__all__ = ["conditions"]
