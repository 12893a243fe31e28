"""Rendering context primitives shared across the conversion pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from slugify import slugify

from .diagnostics import DiagnosticEmitter, ensure_emitter


if TYPE_CHECKING:  # pragma: no cover - typing only
    from flaresmith.adapters.markup.formatter import MarkupFormatter

    from .config import ConversionOptions
    from .rules import RenderPhase


@dataclass(slots=True)
class ImageRecord:
    """Image encountered while emitting a document."""

    src: str
    alt: str = ""
    inline: bool = False


@dataclass(slots=True)
class DocumentState:
    """In-memory state accumulated while converting a single document."""

    title: str | None = None
    warnings: list[str] = field(default_factory=list)
    variables: dict[str, str] = field(default_factory=dict)
    broken_links: list[str] = field(default_factory=list)
    images: list[ImageRecord] = field(default_factory=list)
    headings: list[dict[str, Any]] = field(default_factory=list)
    removed_conditions: dict[str, int] = field(default_factory=dict)
    snippet_cache: dict[Path, Any] = field(default_factory=dict)
    snippet_stack: list[Path] = field(default_factory=list)
    _anchors: set[str] = field(default_factory=set, init=False, repr=False)

    def add_warning(self, message: str) -> None:
        """Record a non-fatal resolution miss once."""
        if message not in self.warnings:
            self.warnings.append(message)

    def remember_variable(self, name: str, value: str) -> None:
        """Track a variable emitted as a reference token."""
        self.variables[name] = value

    def record_broken_link(self, target: str) -> None:
        if target not in self.broken_links:
            self.broken_links.append(target)

    def record_image(self, src: str, *, alt: str = "", inline: bool = False) -> None:
        self.images.append(ImageRecord(src=src, alt=alt, inline=inline))

    def record_removed_condition(self, tag: str) -> None:
        self.removed_conditions[tag] = self.removed_conditions.get(tag, 0) + 1

    def add_heading(self, *, level: int, text: str) -> None:
        """Track heading metadata, promoting the first top-level heading to title."""
        self.headings.append({"level": level, "text": text})
        if self.title is None and level == 1 and text:
            self.title = text

    def unique_anchor(self, text: str, *, fallback: str = "section") -> str:
        """Return a slug unique within the document."""
        base = slugify(text) or fallback
        candidate = base
        suffix = 2
        while candidate in self._anchors:
            candidate = f"{base}-{suffix}"
            suffix += 1
        self._anchors.add(candidate)
        return candidate


@dataclass
class RenderContext:
    """Everything a rewriting handler may need for the document at hand.

    ``runtime`` holds per-call inputs (emitter, source path, resolved
    variables). Entries given to :meth:`attach_runtime` survive phase changes,
    anything a handler stores directly is dropped when the next phase starts.
    """

    options: ConversionOptions
    formatter: MarkupFormatter
    document: Any
    state: DocumentState = field(default_factory=DocumentState)
    runtime: dict[str, Any] = field(default_factory=dict)
    phase: RenderPhase | None = None

    # (phase, node id) of nodes a rule already rewrote.
    _processed: set[tuple[RenderPhase, int]] = field(default_factory=set, init=False)
    _shared: dict[str, Any] = field(default_factory=dict, init=False)

    def enter_phase(self, phase: RenderPhase) -> None:
        self.phase = phase
        self.runtime = {**self._shared}

    def attach_runtime(self, **runtime: Any) -> None:
        self._shared.update(runtime)
        self.runtime.update(runtime)

    @property
    def emitter(self) -> DiagnosticEmitter:
        return ensure_emitter(self.runtime.get("emitter"))

    @property
    def source_path(self) -> Path | None:
        return self.runtime.get("source_path")

    @property
    def project_root(self) -> Path | None:
        return self.runtime.get("project_root")

    def warn(self, message: str) -> None:
        """Record a resolution miss on the document and forward it to the emitter."""
        self.state.add_warning(message)
        self.emitter.warning(message)

    def _mark(self, node: Any, phase: RenderPhase | None) -> tuple[RenderPhase, int] | None:
        active = phase or self.phase
        return None if active is None else (active, id(node))

    def mark_processed(self, node: Any, *, phase: RenderPhase | None = None) -> None:
        """Remember that ``node`` was rewritten during ``phase`` (default: current)."""
        mark = self._mark(node, phase)
        if mark is not None:
            self._processed.add(mark)

    def is_processed(self, node: Any, *, phase: RenderPhase | None = None) -> bool:
        mark = self._mark(node, phase)
        return mark is not None and mark in self._processed


__all__ = ["DocumentState", "ImageRecord", "RenderContext"]
