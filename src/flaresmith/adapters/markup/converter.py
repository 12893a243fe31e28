"""Recursive block emission over a normalised document tree.

The converter walks the tree once. List state travels as a
:class:`~flaresmith.core.lists.ListContext` argument: a list nested inside an
item receives ``context.child(...)``; admonitions, collapsible blocks and table cells
start over with ``None`` because the target syntaxes reset nesting inside
delimited blocks. Content that is flattened into the surrounding flow (a
collapsible without collapsible support) keeps the enclosing context.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from bs4.element import PageElement, Tag

from flaresmith.adapters.handlers._helpers import pixel_dimension
from flaresmith.adapters.handlers.madcap import DEFAULT_DROPDOWN_TITLE
from flaresmith.core.attributes import coerce_attribute, gather_classes
from flaresmith.core.config import OutputFormat
from flaresmith.core.continuity import START_ATTRIBUTE
from flaresmith.core.lists import (
    ContinuationState,
    ListContext,
    ListKind,
    declared_style,
    depth_style,
    explicit_start,
)
from flaresmith.core.nodes import (
    ElementKind,
    admonition_kind,
    element_kind,
    is_blank,
    is_block,
)

from .formatter import Block, BlockRole, TableCell
from .inline import InlineFormatter


if TYPE_CHECKING:  # pragma: no cover - typing only
    from flaresmith.core.context import RenderContext


def _attribute(element: Tag, *names: str) -> str | None:
    for name in names:
        value = coerce_attribute(element.get(name))
        if value and value.strip():
            return value.strip()
    return None


def _has_block_descendant(element: Tag) -> bool:
    return any(is_block(descendant) for descendant in element.find_all(True))


def _code_language(element: Tag) -> str | None:
    declared = _attribute(element, "data-language", "lang")
    if declared:
        return declared
    candidates = [element]
    code = element.find("code")
    if isinstance(code, Tag):
        candidates.append(code)
    for candidate in candidates:
        for css_class in gather_classes(candidate.get("class")):
            for prefix in ("language-", "lang-"):
                if css_class.startswith(prefix):
                    return css_class[len(prefix) :]
    return None


class BlockConverter:
    """Turn a normalised tree into target markup through the active formatter."""

    def __init__(self, context: RenderContext) -> None:
        self.context = context
        self.formatter = context.formatter
        self.options = context.options
        self.inline = InlineFormatter(context)
        self._heading_level = 1

    def convert_document(self, root: Tag) -> str:
        blocks = self.convert_blocks(list(root.children), None)
        return "\n\n".join(block.text for block in blocks if block.text.strip())

    # Grouping

    def _starts_block(self, node: PageElement) -> bool:
        if not isinstance(node, Tag):
            return False
        match element_kind(node):
            case ElementKind.IMAGE | ElementKind.LINE_BREAK:
                return False
            case ElementKind.INLINE_CONTAINER | ElementKind.UNKNOWN | ElementKind.LINK:
                return _has_block_descendant(node)
            case ElementKind.STRONG | ElementKind.EMPHASIS:
                return _has_block_descendant(node)
            case ElementKind.IGNORED:
                return True
            case _:
                return is_block(node)

    def convert_blocks(
        self, nodes: Iterable[PageElement], list_context: ListContext | None
    ) -> list[Block]:
        """Convert a sequence of siblings, grouping inline runs into paragraphs."""
        blocks: list[Block] = []
        pending: list[PageElement] = []

        def flush() -> None:
            if pending:
                blocks.extend(self.inline.render_blocks(pending))
                pending.clear()

        for node in nodes:
            if self._starts_block(node):
                flush()
                blocks.extend(self.convert_block(node, list_context))  # type: ignore[arg-type]
            else:
                pending.append(node)
        flush()
        return blocks

    def convert_block(self, node: Tag, list_context: ListContext | None) -> list[Block]:
        match element_kind(node):
            case ElementKind.HEADING:
                return self.convert_heading(node)
            case ElementKind.PARAGRAPH | ElementKind.CONTAINER | ElementKind.LIST_ITEM:
                return self.convert_blocks(list(node.children), list_context)
            case ElementKind.ORDERED_LIST | ElementKind.UNORDERED_LIST:
                return [Block(self.convert_list(node, list_context), BlockRole.LIST)]
            case ElementKind.TABLE:
                return self.convert_table(node)
            case ElementKind.ADMONITION:
                return self.convert_admonition(node)
            case ElementKind.COLLAPSIBLE:
                return self.convert_collapsible(node, list_context)
            case ElementKind.PROCEDURE:
                return self.convert_procedure(node, list_context)
            case ElementKind.TABS:
                return self.convert_tabs(node, list_context)
            case ElementKind.CODE_BLOCK:
                return self.convert_code(node)
            case ElementKind.BLOCKQUOTE:
                body = self._compound(self.convert_blocks(list(node.children), None))
                return [Block(self.formatter.blockquote(body=body))] if body else []
            case ElementKind.DEFINITION_LIST:
                return self.convert_definition_list(node)
            case ElementKind.FIGURE:
                return self.convert_figure(node)
            case ElementKind.RULE:
                return [Block(self.formatter.rule())]
            case ElementKind.RAW_BLOCK:
                return [Block(self.formatter.raw_block(node.get_text()))]
            case ElementKind.IGNORED:
                return []
            case (
                ElementKind.INLINE_CONTAINER
                | ElementKind.UNKNOWN
                | ElementKind.LINK
                | ElementKind.STRONG
                | ElementKind.EMPHASIS
            ):
                if _has_block_descendant(node):
                    return self.convert_blocks(list(node.children), list_context)
                return self.inline.render_blocks([node])
            case (
                ElementKind.IMAGE
                | ElementKind.LINE_BREAK
                | ElementKind.CODE
                | ElementKind.RAW_INLINE
            ):
                return self.inline.render_blocks([node])

    def _compound(self, blocks: Sequence[Block]) -> str:
        return self.formatter.compound(blocks)

    # Headings

    def convert_heading(self, node: Tag) -> list[Block]:
        level = int((node.name or "h1")[1])
        text = self.inline.render_text(node.children)
        if not text:
            return []
        self.context.state.add_heading(level=level, text=text)
        self._heading_level = level
        anchor = _attribute(node, "id")
        return [Block(self.formatter.heading(level, text, anchor=anchor))]

    # Lists

    def list_start(self, node: Tag) -> int:
        tagged = coerce_attribute(node.get(START_ATTRIBUTE))
        if tagged and tagged.strip().isdigit():
            return int(tagged)
        return explicit_start(node) or 1

    def convert_list(self, node: Tag, parent: ListContext | None) -> str:
        kind = (
            ListKind.ORDERED
            if element_kind(node) is ElementKind.ORDERED_LIST
            else ListKind.UNORDERED
        )
        depth = 0 if parent is None else parent.depth + 1
        style = declared_style(node) or depth_style(depth)
        start = self.list_start(node) if kind is ListKind.ORDERED else 1
        if parent is None:
            context = ListContext(depth=0, kind=kind, style=style, next_ordinal=start)
        else:
            context = parent.child(kind, style, start)
        first = context

        items: list[str] = []
        for child in node.children:
            if is_blank(child):
                continue
            if isinstance(child, Tag) and element_kind(child) is ElementKind.LIST_ITEM:
                items.append(self.convert_item(list(child.children), context))
            else:
                # Anything the normaliser left behind still belongs to this list.
                items.append(self.convert_item([child], context))
            context = context.advance()
        return self.formatter.list_block(items, first, start=start)

    def convert_item(self, nodes: Sequence[PageElement], context: ListContext) -> str:
        state = ContinuationState()
        main = ""
        continuation: list[Block] = []
        for block in self.convert_blocks(nodes, context):
            if not state.is_continuation and block.role is BlockRole.PARAGRAPH:
                main = block.text
                state = state.after_block(main_text=True)
            else:
                continuation.append(block)
                state = state.after_block()
        return self.formatter.list_item(self.formatter.list_marker(context), main, continuation)

    # Leaf emitters

    def convert_table(self, node: Tag) -> list[Block]:
        rows: list[list[TableCell]] = []
        for row in node.find_all("tr"):
            if row.find_parent("table") is not node:
                continue
            in_head = isinstance(row.parent, Tag) and row.parent.name == "thead"
            cells: list[TableCell] = []
            for cell in row.find_all(["td", "th"], recursive=False):
                blocks = self.convert_blocks(list(cell.children), None)
                span = coerce_attribute(cell.get("colspan")) or "1"
                cells.append(
                    TableCell(
                        blocks=tuple(block.text for block in blocks),
                        header=in_head or cell.name == "th",
                        colspan=int(span) if span.strip().isdigit() else 1,
                    )
                )
            if cells:
                rows.append(cells)
        if not rows:
            return []
        caption = None
        caption_node = node.find("caption", recursive=False)
        if isinstance(caption_node, Tag):
            caption = self.inline.render_text(caption_node.children) or None
        return [Block(self.formatter.table(rows, caption=caption))]

    def convert_admonition(self, node: Tag) -> list[Block]:
        kind = admonition_kind(node) or "note"
        blocks = self.convert_blocks(list(node.children), None)
        title = _attribute(node, "data-title")
        return [Block(self.formatter.admonition(kind, blocks, title=title))]

    def _collapsible_enabled(self) -> bool:
        if self.formatter.format is OutputFormat.ASCIIDOC:
            return self.options.asciidoc.use_collapsible_blocks
        return self.options.writerside.use_collapsible

    def convert_collapsible(self, node: Tag, list_context: ListContext | None) -> list[Block]:
        title = _attribute(node, "data-title")
        children = list(node.children)
        summary = node.find("summary", recursive=False)
        if isinstance(summary, Tag):
            title = title or self.inline.render_text(summary.children)
            children = [child for child in children if child is not summary]
        title = title or DEFAULT_DROPDOWN_TITLE
        if self._collapsible_enabled():
            body = "\n\n".join(block.text for block in self.convert_blocks(children, None))
            return [Block(self.formatter.collapsible(title=title, body=body))]
        # Flattened: the body blocks stay separate so a list item can attach each one.
        level = min(max(self._heading_level + 1, 2), 6)
        heading = Block(self.formatter.fallback_heading(level, title))
        body_blocks = self.convert_blocks(children, list_context)
        return [heading, *(block for block in body_blocks if block.text.strip())]

    def convert_procedure(self, node: Tag, list_context: ListContext | None) -> list[Block]:
        if (
            self.formatter.format is OutputFormat.WRITERSIDE
            and not self.options.writerside.use_procedures
        ):
            return self.convert_blocks(list(node.children), list_context)
        steps_list = node.find("ol")
        if not isinstance(steps_list, Tag):
            return self.convert_blocks(list(node.children), list_context)
        intro = self.convert_blocks(
            [child for child in node.children if child is not steps_list], None
        )
        context = ListContext(kind=ListKind.ORDERED)
        steps: list[tuple[str, list[Block]]] = []
        for item in steps_list.find_all("li", recursive=False):
            blocks = self.convert_blocks(list(item.children), context)
            if blocks and blocks[0].role is BlockRole.PARAGRAPH:
                steps.append((blocks[0].text, blocks[1:]))
            else:
                steps.append(("", blocks))
        title = _attribute(node, "data-title", "title")
        anchor = _attribute(node, "id")
        procedure = self.formatter.procedure(steps, title=title, anchor=anchor)
        return [*intro, Block(procedure)]

    def convert_tabs(self, node: Tag, list_context: ListContext | None) -> list[Block]:
        tabs: list[tuple[str, str]] = []
        for index, tab in enumerate(
            (child for child in node.children if isinstance(child, Tag)), start=1
        ):
            title = _attribute(tab, "data-title", "title") or f"Tab {index}"
            body = "\n\n".join(
                block.text for block in self.convert_blocks(list(tab.children), None)
            )
            tabs.append((title, body))
        if not tabs:
            return []
        if (
            self.formatter.format is OutputFormat.WRITERSIDE
            and not self.options.writerside.use_tabs
        ):
            level = min(max(self._heading_level + 1, 2), 6)
            blocks: list[Block] = []
            for title, body in tabs:
                blocks.append(Block(self.formatter.fallback_heading(level, title)))
                if body:
                    blocks.append(Block(body))
            return blocks
        return [Block(self.formatter.tabs(tabs=tabs))]

    def convert_code(self, node: Tag) -> list[Block]:
        text = node.get_text().strip("\n")
        if not text.strip():
            return []
        return [Block(self.formatter.code_block(text=text, language=_code_language(node)))]

    def convert_definition_list(self, node: Tag) -> list[Block]:
        entries: list[tuple[str, str]] = []
        term: str | None = None
        for child in node.children:
            if not isinstance(child, Tag):
                continue
            if child.name == "dt":
                if term is not None:
                    entries.append((term, ""))
                term = self.inline.render_text(child.children)
            elif child.name == "dd":
                definition = self._compound(self.convert_blocks(list(child.children), None))
                entries.append((term or "", definition))
                term = None
        if term is not None:
            entries.append((term, ""))
        if not entries:
            return []
        return [Block(self.formatter.definition_list(entries=entries, glossary=False))]

    def convert_figure(self, node: Tag) -> list[Block]:
        image = node.find("img")
        caption_node = node.find("figcaption")
        caption = None
        if isinstance(caption_node, Tag):
            caption = self.inline.render_text(caption_node.children) or None
        if not isinstance(image, Tag):
            return self.convert_blocks(list(node.children), None)
        src = (coerce_attribute(image.get("src")) or "").strip()
        if not src:
            return []
        alt = (coerce_attribute(image.get("alt")) or "").strip()
        target = self.inline.image_source(src)
        self.context.state.record_image(target, alt=alt, inline=False)
        return [
            Block(
                self.formatter.block_image(
                    target,
                    alt,
                    width=pixel_dimension(image, "width"),
                    height=pixel_dimension(image, "height"),
                    caption=caption or _attribute(image, "title"),
                )
            )
        ]


__all__ = ["BlockConverter"]
