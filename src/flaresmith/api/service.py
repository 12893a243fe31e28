"""Conversion orchestration utilities for CLI and embedding integrations."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
import logging
from pathlib import Path
import re
from typing import TYPE_CHECKING, Any

from flaresmith.adapters.markup.renderer import MarkupRenderer, formatter_for
from flaresmith.core.config import ConversionOptions, OutputFormat, VariableMode, build_options
from flaresmith.core.context import DocumentState, ImageRecord
from flaresmith.core.diagnostics import DiagnosticEmitter, ensure_emitter, record_event
from flaresmith.core.exceptions import ConversionError
from flaresmith.core.variables import VariableSet, find_project_root


if TYPE_CHECKING:  # pragma: no cover - typing only
    from .batch import BatchResult


logger = logging.getLogger(__name__)

_WORD = re.compile(r"\w+", re.UNICODE)

OptionsLike = ConversionOptions | Mapping[str, Any] | None


__all__ = [
    "ConversionMetadata",
    "ConversionResult",
    "ConversionService",
    "coerce_options",
    "count_words",
]


def coerce_options(options: OptionsLike) -> ConversionOptions:
    """Return validated options from a model, a raw mapping or ``None``."""
    if isinstance(options, ConversionOptions):
        return options
    return build_options(options)


def count_words(text: str) -> int:
    return len(_WORD.findall(text))


@dataclass(slots=True)
class ConversionMetadata:
    """Side-channel data produced alongside the converted text."""

    format: OutputFormat
    source: Path | None = None
    title: str | None = None
    word_count: int = 0
    warnings: list[str] = field(default_factory=list)
    variables: dict[str, str] = field(default_factory=dict)
    broken_links: list[str] = field(default_factory=list)
    images: list[ImageRecord] = field(default_factory=list)
    removed_conditions: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "format": self.format.value,
            "source": str(self.source) if self.source else None,
            "title": self.title,
            "word_count": self.word_count,
            "warnings": list(self.warnings),
            "variables": dict(self.variables),
            "broken_links": list(self.broken_links),
            "images": [
                {"src": image.src, "alt": image.alt, "inline": image.inline}
                for image in self.images
            ],
            "removed_conditions": dict(self.removed_conditions),
        }


@dataclass(slots=True)
class ConversionResult:
    """Converted payload, optional variables sidecar and metadata."""

    content: str
    metadata: ConversionMetadata
    variables_file: str | None = None
    variables_filename: str | None = None

    @property
    def warnings(self) -> list[str]:
        return self.metadata.warnings


class ConversionService:
    """Facade converting single documents and batches of documents."""

    def __init__(
        self,
        options: OptionsLike = None,
        *,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self.options = coerce_options(options)
        self.emitter = ensure_emitter(emitter)

    def convert_string(
        self,
        html: str,
        options: OptionsLike = None,
        *,
        source_path: Path | str | None = None,
        variables: VariableSet | Mapping[str, str] | None = None,
    ) -> ConversionResult:
        """Convert an HTML string.

        ``source_path`` anchors relative snippet and link resolution and is used
        to discover the project's variable sets.
        """
        active = coerce_options(options) if options is not None else self.options
        source = Path(source_path) if source_path is not None else None
        renderer = MarkupRenderer(active)
        state = DocumentState()

        runtime: dict[str, Any] = {"source_path": source}
        if source is not None:
            runtime["project_root"] = find_project_root(source.resolve())
        if variables is not None:
            runtime["variables"] = variables

        content = renderer.render(html, runtime=runtime, state=state, emitter=self.emitter)

        metadata = ConversionMetadata(
            format=active.format,
            source=source,
            title=state.title,
            word_count=count_words(content),
            warnings=list(state.warnings),
            variables=dict(state.variables),
            broken_links=list(state.broken_links),
            images=list(state.images),
            removed_conditions=dict(state.removed_conditions),
        )
        result = ConversionResult(content=content, metadata=metadata)
        if active.variables.mode is VariableMode.REFERENCE and state.variables:
            result.variables_file = renderer.formatter.render_variables_file(
                state.variables, instance=active.variables.instance
            )
            result.variables_filename = renderer.formatter.variables_filename()

        record_event(
            self.emitter,
            "document_converted",
            {"source": str(source) if source else None, "format": active.format.value},
        )
        return result

    def convert_file(
        self,
        path: Path | str,
        options: OptionsLike = None,
        *,
        variables: VariableSet | Mapping[str, str] | None = None,
    ) -> ConversionResult:
        """Read and convert a single document."""
        source = Path(path)
        try:
            html = source.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            html = source.read_text(encoding="latin-1")
        except OSError as exc:
            raise ConversionError(f"Unable to read '{source}': {exc}", source=str(source)) from exc
        return self.convert_string(html, options, source_path=source, variables=variables)

    def write_result(
        self,
        result: ConversionResult,
        output_path: Path | str,
        *,
        sidecar: bool = True,
    ) -> list[Path]:
        """Write the converted payload, and its variables sidecar next to it."""
        target = Path(output_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(result.content, encoding="utf-8")
        written = [target]
        if sidecar and result.variables_file and result.variables_filename:
            sidecar_path = target.parent / result.variables_filename
            sidecar_path.write_text(result.variables_file, encoding="utf-8")
            written.append(sidecar_path)
        logger.debug("Wrote %s", ", ".join(str(path) for path in written))
        return written

    def render_variables_file(
        self, definitions: Mapping[str, str], options: OptionsLike = None
    ) -> tuple[str, str]:
        """Return the sidecar file name and payload for ``definitions``."""
        active = coerce_options(options) if options is not None else self.options
        formatter = formatter_for(active)
        payload = formatter.render_variables_file(definitions, instance=active.variables.instance)
        return formatter.variables_filename(), payload

    def convert_batch(
        self,
        inputs: Path | str | Sequence[Path | str],
        output_dir: Path | str,
        options: OptionsLike = None,
        *,
        concurrency: int = 4,
        include_snippets: bool = False,
    ) -> BatchResult:
        """Synchronous wrapper around :func:`flaresmith.api.batch.convert_batch`."""
        import asyncio

        from .batch import convert_batch

        return asyncio.run(
            convert_batch(
                inputs,
                output_dir,
                options if options is not None else self.options,
                concurrency=concurrency,
                include_snippets=include_snippets,
                service=self,
            )
        )
