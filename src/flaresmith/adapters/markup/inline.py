"""Inline emission with word-boundary aware spacing.

Inline nodes are first flattened into :class:`Segment` objects, then joined.
Joining is where spacing is decided: help-authoring exports regularly glue a
styled run to the neighbouring word (``click<b>Save</b>now``), so a single space
is inserted between a styled run and an adjacent word character while
punctuation keeps binding to the run it follows.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
import logging
from pathlib import Path, PurePosixPath
import re
from typing import TYPE_CHECKING
from urllib.parse import unquote

from bs4.element import PageElement, Tag

from flaresmith.adapters.handlers._helpers import is_external_target, pixel_dimension
from flaresmith.core.attributes import coerce_attribute, has_class
from flaresmith.core.nodes import ElementKind, NodeKind, element_kind, node_kind

from .formatter import Block, BlockRole


if TYPE_CHECKING:  # pragma: no cover - typing only
    from flaresmith.core.context import RenderContext


logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"[ \t\r\n\f\v]+")
DOCUMENT_SUFFIXES = (".htm", ".html", ".xhtml", ".flsnp")

# Characters after which a styled run needs a separating space.
_SPACE_BEFORE_RUN = ",.;:!?)]}"
# Characters before which a styled run needs a separating space.
_SPACE_AFTER_RUN = "([{"


@dataclass(slots=True)
class Segment:
    """A piece of inline output and the visible characters at its edges."""

    text: str
    first: str = ""
    last: str = ""
    styled: bool = False
    block: bool = False
    hard_break: bool = False

    @classmethod
    def plain(cls, text: str, escaped: str) -> Segment:
        return cls(text=escaped, first=text[:1], last=text[-1:])

    @classmethod
    def run(cls, markup: str, inner: str) -> Segment:
        return cls(text=markup, first=inner[:1], last=inner[-1:], styled=True)


def collapse_whitespace(text: str) -> str:
    """Collapse runs of ASCII whitespace, leaving non-breaking spaces alone."""
    return _WHITESPACE.sub(" ", text)


def _needs_space(left: Segment | None, right: Segment) -> bool:
    if left is None or not left.last or not right.first:
        return False
    if left.last == " " or right.first == " ":
        return False
    if right.styled and left.styled:
        return left.last.isalnum() and right.first.isalnum()
    if right.styled:
        return left.last.isalnum() or left.last in _SPACE_BEFORE_RUN
    if left.styled:
        return right.first.isalnum() or right.first in _SPACE_AFTER_RUN
    return False


def join_segments(segments: Iterable[Segment], line_break: str) -> list[Block]:
    """Join segments into paragraphs, splitting at block segments."""
    blocks: list[Block] = []
    out = ""
    previous: Segment | None = None
    after_break = False

    def flush() -> None:
        nonlocal out, previous
        text = out.strip(" ")
        if text.strip():
            blocks.append(Block(text, BlockRole.PARAGRAPH))
        out = ""
        previous = None

    for segment in segments:
        if segment.block:
            flush()
            blocks.append(Block(segment.text, BlockRole.OTHER))
            continue
        if segment.hard_break:
            if out.strip():
                out = out.rstrip(" ") + line_break
                after_break = True
            previous = None
            continue
        text = segment.text
        if not text:
            continue
        if not out or out.endswith((" ", "\n")) or after_break:
            text = text.lstrip(" ")
            if not text:
                continue
        elif _needs_space(previous, segment):
            out += " "
        out += text
        after_break = False
        previous = segment
    flush()
    return blocks


class InlineFormatter:
    """Render inline nodes through the active formatter."""

    def __init__(self, context: RenderContext) -> None:
        self.context = context
        self.formatter = context.formatter
        self.options = context.options

    # Public entry points

    def render_blocks(self, nodes: Iterable[PageElement]) -> list[Block]:
        """Render inline nodes, splitting paragraphs around block images."""
        segments: list[Segment] = []
        for node in nodes:
            self._collect(node, segments, allow_blocks=True)
        return join_segments(segments, self.formatter.line_break())

    def render_text(self, nodes: Iterable[PageElement]) -> str:
        """Render inline nodes into a single line of text."""
        segments: list[Segment] = []
        for node in nodes:
            self._collect(node, segments, allow_blocks=False)
        blocks = join_segments(segments, self.formatter.line_break())
        return " ".join(block.text for block in blocks)

    # Collection

    def _collect(self, node: PageElement, out: list[Segment], *, allow_blocks: bool) -> None:
        match node_kind(node):
            case NodeKind.TEXT:
                text = collapse_whitespace(str(node))
                if text:
                    out.append(Segment.plain(text, self.formatter.escape_text(text)))
                return
            case NodeKind.COMMENT | NodeKind.OTHER:
                return
            case NodeKind.ELEMENT:
                pass
        if not isinstance(node, Tag):
            return
        match element_kind(node):
            case ElementKind.RAW_INLINE:
                token = node.get_text()
                out.append(Segment(text=token, first="a", last="a"))
            case ElementKind.RAW_BLOCK:
                if allow_blocks:
                    out.append(Segment(text=node.get_text().strip("\n"), block=True))
                else:
                    out.append(Segment(text=node.get_text().strip(), first="a", last="a"))
            case ElementKind.STRONG:
                self._styled(node, out, self.formatter.strong)
            case ElementKind.EMPHASIS:
                self._styled(node, out, self.formatter.emphasis)
            case ElementKind.CODE:
                self._code(node, out)
            case ElementKind.LINK:
                self._link(node, out, allow_blocks=allow_blocks)
            case ElementKind.IMAGE:
                self._image(node, out, allow_blocks=allow_blocks)
            case ElementKind.LINE_BREAK:
                out.append(Segment(text="", hard_break=True))
            case ElementKind.IGNORED:
                return
            case _:
                for child in node.children:
                    self._collect(child, out, allow_blocks=allow_blocks)

    def _inner_text(self, node: Tag) -> str:
        """Render children as a single run, keeping edge whitespace visible."""
        segments: list[Segment] = []
        for child in node.children:
            self._collect(child, segments, allow_blocks=False)
        rendered = " ".join(
            block.text for block in join_segments(segments, self.formatter.line_break())
        )
        raw = collapse_whitespace(node.get_text())
        leading = " " if raw.startswith(" ") else ""
        trailing = " " if raw.endswith(" ") else ""
        return f"{leading}{rendered}{trailing}"

    def _emit_run(self, inner: str, markup: str, out: list[Segment], visible: str) -> None:
        if inner.startswith(" "):
            out.append(Segment(text=" ", first=" ", last=" "))
        out.append(Segment.run(markup, visible))
        if inner.endswith(" "):
            out.append(Segment(text=" ", first=" ", last=" "))

    def _styled(
        self,
        node: Tag,
        out: list[Segment],
        wrap: Callable[[str], str],
    ) -> None:
        inner = self._inner_text(node)
        stripped = inner.strip(" ")
        if not stripped:
            if inner:
                out.append(Segment(text=" ", first=" ", last=" "))
            return
        visible = collapse_whitespace(node.get_text()).strip(" ")
        self._emit_run(inner, wrap(stripped), out, visible or stripped)

    def _code(self, node: Tag, out: list[Segment]) -> None:
        inner = collapse_whitespace(node.get_text())
        stripped = inner.strip(" ")
        if not stripped:
            return
        self._emit_run(inner, self.formatter.code(stripped), out, stripped)

    # Links

    def classify_link(self, href: str) -> tuple[str, str]:
        """Return the link kind and the rewritten target."""
        if href.startswith("#"):
            return "anchor", href
        if is_external_target(href):
            scheme = href.split(":", 1)[0].lower()
            return ("external" if scheme in {"http", "https"} else "other"), href
        path, _, anchor = href.partition("#")
        suffix = PurePosixPath(path).suffix.lower()
        if suffix not in DOCUMENT_SUFFIXES:
            return "other", href
        self._check_target(path, href)
        target = str(PurePosixPath(path).with_suffix(self.formatter.extension))
        target = self.formatter.document_target(target)
        return "document", f"{target}#{anchor}" if anchor else target

    def _check_target(self, path: str, href: str) -> None:
        source = self.context.source_path
        if source is None:
            return
        candidate = Path(source).parent / unquote(path)
        if not candidate.exists():
            logger.debug("Broken document link '%s' in %s", href, source)
            self.context.state.record_broken_link(href)

    def _link(self, node: Tag, out: list[Segment], *, allow_blocks: bool) -> None:
        href = (coerce_attribute(node.get("href")) or "").strip()
        if not href:
            for child in node.children:
                self._collect(child, out, allow_blocks=allow_blocks)
            return
        kind, target = self.classify_link(href)
        inner = self._inner_text(node)
        stripped = inner.strip(" ")
        markup = self.formatter.link(target, stripped, kind=kind)
        if stripped:
            visible = collapse_whitespace(node.get_text()).strip(" ")
            self._emit_run(inner, markup, out, visible or stripped)
        else:
            out.append(Segment.run(markup, "a"))

    # Images

    def is_inline_image(self, node: Tag) -> bool:
        width = pixel_dimension(node, "width")
        height = pixel_dimension(node, "height")
        limit = self.options.images.inline_max_size
        if (width is not None and width <= limit) or (height is not None and height <= limit):
            return True
        return has_class(node, *self.options.images.inline_classes)

    def image_source(self, src: str) -> str:
        base = self.options.images.base_path
        if base and not is_external_target(src) and not src.startswith("/"):
            return f"{base.rstrip('/')}/{PurePosixPath(src).name}"
        return src

    def _image(self, node: Tag, out: list[Segment], *, allow_blocks: bool) -> None:
        src = (coerce_attribute(node.get("src")) or "").strip()
        if not src:
            return
        alt = collapse_whitespace(coerce_attribute(node.get("alt")) or "").strip()
        width = pixel_dimension(node, "width")
        height = pixel_dimension(node, "height")
        target = self.image_source(src)
        inline = self.is_inline_image(node) or not allow_blocks
        self.context.state.record_image(target, alt=alt, inline=inline)
        if inline:
            markup = self.formatter.inline_image(target, alt, width=width, height=height)
            out.append(Segment.run(markup, "a"))
            return
        caption = (coerce_attribute(node.get("title")) or "").strip() or None
        markup = self.formatter.block_image(
            target, alt, width=width, height=height, caption=caption
        )
        out.append(Segment(text=markup, block=True))


__all__ = [
    "DOCUMENT_SUFFIXES",
    "InlineFormatter",
    "Segment",
    "collapse_whitespace",
    "join_segments",
]
