"""Snippet resolution: splice reusable fragments or point at them."""

from __future__ import annotations

from collections.abc import Callable
import copy
from dataclasses import dataclass, field
import logging
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from bs4.element import NavigableString, PageElement, Tag
from slugify import slugify

from .attributes import coerce_attribute
from .conditions import (
    EFFECTIVE_CONDITIONS_ATTRIBUTE,
    ConditionMatcher,
    filter_tree,
    parse_conditions,
    root_conditions,
)
from .config import SnippetMode
from .nodes import ElementKind, element_kind, make_raw
from .parsing import parse_html


if TYPE_CHECKING:  # pragma: no cover - typing only
    from flaresmith.adapters.markup.formatter import MarkupFormatter

    from .context import DocumentState
    from .variables import VariableResolver


logger = logging.getLogger(__name__)

SNIPPET_BLOCK_TAG = "madcap:snippetblock"
SNIPPET_TEXT_TAG = "madcap:snippettext"
SNIPPET_ATTRIBUTE = "data-mc-snippet"
SNIPPETS_DIRECTORY = Path("Content") / "Resources" / "Snippets"
SNIPPET_EXTENSIONS = {".flsnp", ".htm", ".html"}


@dataclass(frozen=True, slots=True)
class SnippetReference:
    """Pointer from a placeholder to the fragment it stands for."""

    source: str
    resolved_path: Path | None
    mode: SnippetMode
    inline: bool = False
    include_target: str | None = None


@dataclass(slots=True)
class InlineResult:
    """Nodes replacing a placeholder once it has been resolved."""

    reference: SnippetReference
    nodes: list[PageElement] = field(default_factory=list)
    missing: bool = False


def is_snippet_placeholder(element: Tag) -> bool:
    name = (element.name or "").lower()
    return name in {SNIPPET_BLOCK_TAG, SNIPPET_TEXT_TAG} or SNIPPET_ATTRIBUTE in element.attrs


def snippet_source(element: Tag) -> str | None:
    source = coerce_attribute(element.get("src")) or coerce_attribute(
        element.get(SNIPPET_ATTRIBUTE)
    )
    return source.strip() if source and source.strip() else None


def include_target(source: str, extension: str) -> str:
    """Translate a snippet path to the path of its converted counterpart."""
    path = PurePosixPath(source.replace("\\", "/"))
    if path.suffix.lower() in SNIPPET_EXTENSIONS:
        path = path.with_suffix(extension)
    return path.as_posix()


class SnippetResolver:
    """Resolve snippet placeholders against fragments found on disk.

    Fragments are parsed, filtered and variable-resolved once per distinct
    path; the cache lives on the :class:`DocumentState` of the running
    conversion so nothing leaks between documents.
    """

    def __init__(
        self,
        *,
        formatter: MarkupFormatter,
        state: DocumentState,
        matcher: ConditionMatcher,
        mode: SnippetMode = SnippetMode.MERGE,
        variables: VariableResolver | None = None,
        base_dir: Path | None = None,
        project_root: Path | None = None,
        search_paths: list[Path] | None = None,
        parser: str = "lxml",
        warn: Callable[[str], None] | None = None,
    ) -> None:
        self.formatter = formatter
        self.state = state
        self.matcher = matcher
        self.mode = mode
        self.variables = variables
        self.base_dir = base_dir
        self.project_root = project_root
        self.search_paths = list(search_paths or [])
        self.parser = parser
        self._warn = warn

    def warn(self, message: str) -> None:
        if self._warn is not None:
            self._warn(message)
        else:
            self.state.add_warning(message)

    def locate(self, source: str, *, base_dir: Path | None = None) -> Path | None:
        """Find the fragment file for ``source``."""
        relative = Path(source.replace("\\", "/"))
        if relative.is_absolute():
            return relative if relative.is_file() else None
        candidates: list[Path] = []
        directory = base_dir or self.base_dir
        if directory is not None:
            candidates.append(directory / relative)
        if self.project_root is not None:
            candidates.append(self.project_root / SNIPPETS_DIRECTORY / relative.name)
        candidates.extend(path / relative for path in self.search_paths)
        candidates.extend(path / relative.name for path in self.search_paths)
        for candidate in candidates:
            if candidate.is_file():
                return candidate.resolve()
        return None

    def reference(self, placeholder: Tag, *, base_dir: Path | None = None) -> SnippetReference:
        source = snippet_source(placeholder) or ""
        return SnippetReference(
            source=source,
            resolved_path=self.locate(source, base_dir=base_dir) if source else None,
            mode=self.mode,
            inline=(placeholder.name or "").lower() == SNIPPET_TEXT_TAG,
            include_target=include_target(source, self.formatter.extension) if source else None,
        )

    def resolve(
        self,
        placeholder: Tag,
        mode: SnippetMode | None = None,
        *,
        base_dir: Path | None = None,
    ) -> InlineResult:
        """Return the nodes replacing ``placeholder`` without touching the tree."""
        reference = self.reference(placeholder, base_dir=base_dir)
        active_mode = mode or self.mode

        if active_mode is SnippetMode.REFERENCE and reference.include_target:
            directive = self.formatter.include_directive(
                reference.include_target, element_id=snippet_element_id(reference.source)
            )
            return InlineResult(reference, [make_raw(directive, block=not reference.inline)])

        if reference.resolved_path is None:
            self.warn(f"Snippet not found: {reference.source or '<missing src>'}")
            return InlineResult(reference, [self._missing(reference)], missing=True)

        path = reference.resolved_path
        if path in self.state.snippet_stack:
            chain = " -> ".join(item.name for item in [*self.state.snippet_stack, path])
            self.warn(f"Circular snippet reference: {chain}")
            return InlineResult(reference, [self._missing(reference)], missing=True)

        cached = path in self.state.snippet_cache
        body = self.state.snippet_cache.get(path) if cached else self._load(path, placeholder)
        if not cached:
            self.state.snippet_cache[path] = body
        if body is None:
            return InlineResult(reference, [])

        fragment = copy.copy(body)
        nodes = list(fragment.contents)
        if reference.inline:
            nodes = _inline_children(nodes)
        for node in nodes:
            node.extract()
        return InlineResult(reference, nodes)

    def resolve_all(self, root: Tag, *, base_dir: Path | None = None) -> int:
        """Resolve every placeholder below ``root`` in place and return the count."""
        placeholders = [
            element for element in root.find_all(True) if is_snippet_placeholder(element)
        ]
        for placeholder in placeholders:
            if placeholder.parent is None:
                continue
            result = self.resolve(placeholder, base_dir=base_dir)
            anchor: PageElement = placeholder
            for node in result.nodes:
                anchor.insert_after(node)
                anchor = node
            placeholder.decompose()
        return len(placeholders)

    def _load(self, path: Path, placeholder: Tag) -> Tag | None:
        try:
            html = path.read_text(encoding="utf-8")
        except OSError as exc:
            self.warn(f"Unable to read snippet {path.name}: {exc}")
            return None
        soup = parse_html(html, self.parser)
        if self.matcher.first_excluded(root_conditions(soup)) is not None:
            logger.debug("snippet %s excluded by its root conditions", path)
            return None
        body = soup.body or soup
        inherited = parse_conditions(placeholder.get(EFFECTIVE_CONDITIONS_ATTRIBUTE))
        filter_tree(body, self.matcher, inherited=inherited, annotate=is_snippet_placeholder)
        if self.variables is not None:
            extracted = self.variables.resolve(body, warn=self.warn)
            for name, value in (extracted or {}).items():
                self.state.remember_variable(name, value)
        self.state.snippet_stack.append(path)
        try:
            self.resolve_all(body, base_dir=path.parent)
        finally:
            self.state.snippet_stack.pop()
        return body

    def _missing(self, reference: SnippetReference) -> PageElement:
        label = f"Missing snippet: {reference.source or '<missing src>'}"
        if reference.inline:
            return NavigableString(f"[{label}]")
        paragraph = Tag(name="p", attrs={"class": "missing-snippet"})
        paragraph.append(NavigableString(label))
        return paragraph


def _inline_children(nodes: list[PageElement]) -> list[PageElement]:
    """Unwrap a lone paragraph so text snippets stay inline."""
    elements = [node for node in nodes if isinstance(node, Tag)]
    texts = [node for node in nodes if isinstance(node, NavigableString) and str(node).strip()]
    if len(elements) == 1 and not texts and element_kind(elements[0]) is ElementKind.PARAGRAPH:
        return list(elements[0].contents)
    return nodes


def snippet_element_id(source: str) -> str:
    return slugify(PurePosixPath(source.replace("\\", "/")).stem) or "snippet"


__all__ = [
    "SNIPPETS_DIRECTORY",
    "InlineResult",
    "SnippetReference",
    "SnippetResolver",
    "include_target",
    "is_snippet_placeholder",
    "snippet_element_id",
    "snippet_source",
]
