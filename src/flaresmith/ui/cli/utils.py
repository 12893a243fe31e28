"""Auxiliary helpers used by CLI commands."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

from flaresmith.core.config import ConversionOptions, build_options, load_options


def _extend_unique(target: list[Any], values: Iterable[Any]) -> None:
    for value in values:
        if value not in target:
            target.append(value)


def build_cli_options(
    *,
    config: Path | None = None,
    output_format: str | None = None,
    variable_mode: str | None = None,
    naming: str | None = None,
    snippet_mode: str | None = None,
    exclude_conditions: Iterable[str] | None = None,
    include_conditions: Iterable[str] | None = None,
    variable_files: Iterable[Path] | None = None,
    parser: str | None = None,
) -> ConversionOptions:
    """Merge a YAML configuration with explicit command-line overrides."""
    base = load_options(config) if config is not None else ConversionOptions()
    data = base.model_dump()

    if output_format:
        data["format"] = output_format
    if parser:
        data["parser"] = parser
    if variable_mode:
        data["variables"]["mode"] = variable_mode
    if naming:
        data["variables"]["naming_convention"] = naming
    if snippet_mode:
        data["snippets"]["mode"] = snippet_mode
    if exclude_conditions:
        _extend_unique(data["conditions"]["exclude"], exclude_conditions)
    if include_conditions:
        _extend_unique(data["conditions"]["include"], include_conditions)
    if variable_files:
        _extend_unique(data["variables"]["sources"], variable_files)

    return build_options(data)


def default_output_path(source: Path, options: ConversionOptions) -> Path:
    """Return the output path used when ``-o`` points to a directory."""
    return source.with_suffix(options.format.extension)


def resolve_output_target(
    source: Path, output: Path | None, options: ConversionOptions
) -> Path | None:
    """Infer where a single conversion should be written; ``None`` means stdout."""
    if output is None:
        return None
    if output.is_dir() or not output.suffix:
        return output / default_output_path(source, options).name
    return output


__all__ = ["build_cli_options", "default_output_path", "resolve_output_target"]
