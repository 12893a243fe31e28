"""AsciiDoc emitter."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
import re
from typing import TYPE_CHECKING, ClassVar

from flaresmith.core.config import NamingConvention, OutputFormat, VariableMode
from flaresmith.core.lists import ListContext, ListKind
from flaresmith.core.variables import apply_naming_convention

from .formatter import Block, BlockRole, MarkupFormatter, TableCell, strip_admonition_label


if TYPE_CHECKING:  # pragma: no cover - typing only
    from flaresmith.core.context import DocumentState


ADMONITION_LABELS = {
    "note": "NOTE",
    "tip": "TIP",
    "warning": "WARNING",
    "important": "IMPORTANT",
    "caution": "CAUTION",
    "danger": "WARNING",
    "attention": "IMPORTANT",
}

MAX_MARKER_DEPTH = 5
_MARKER_LINE = re.compile(r"^(\.{1,5}|\*{1,5}) \S")


def attribute_name(name: str) -> str:
    """Return an AsciiDoc-safe attribute name."""
    cleaned = re.sub(r"[^a-z0-9_-]", "-", name.lower())
    return re.sub(r"-{2,}", "-", cleaned).strip("-") or "var"


def _last_marker_depth(text: str) -> int:
    """Return the marker length of the last list item line in ``text``, 0 if none."""
    for line in reversed(text.split("\n")):
        match = _MARKER_LINE.match(line)
        if match:
            return len(match.group(1))
    return 0


class AsciiDocFormatter(MarkupFormatter):
    format: ClassVar[OutputFormat] = OutputFormat.ASCIIDOC
    extension: ClassVar[str] = ".adoc"
    template_subdir: ClassVar[str] = "asciidoc"

    def strong(self, text: str) -> str:
        return f"*{text}*"

    def emphasis(self, text: str) -> str:
        return f"_{text}_"

    def code(self, text: str) -> str:
        if "`" in text or "+" in text:
            return f"`+{text}+`"
        return f"`{text}`"

    def line_break(self) -> str:
        return " +\n"

    def link(self, href: str, text: str, *, kind: str) -> str:
        label = text.replace("]", r"\]")
        match kind:
            case "anchor":
                anchor = href.lstrip("#")
                return f"<<{anchor},{label}>>" if label else f"<<{anchor}>>"
            case "document":
                # Macro targets end at the first space.
                return f"xref:{self.url(href)}[{label}]"
            case "external":
                return f"{self.url(href)}[{label}]"
            case _:
                return f"link:{self.url(href)}[{label}]"

    def inline_image(self, src: str, alt: str, *, width: int | None, height: int | None) -> str:
        return f"image:{self.url(src)}[{self._image_attributes(alt, width, height)}]"

    def block_image(
        self,
        src: str,
        alt: str,
        *,
        width: int | None = None,
        height: int | None = None,
        caption: str | None = None,
    ) -> str:
        return self.figure(
            src=self.url(src),
            attributes=self._image_attributes(alt, width, height),
            caption=caption,
        )

    @staticmethod
    def _image_attributes(alt: str, width: int | None, height: int | None) -> str:
        parts = [alt.replace("]", r"\]").replace(",", r"\,")] if alt else []
        if width:
            parts.append(f"width={width}")
        if height:
            parts.append(f"height={height}")
        return ",".join(parts)

    def document_target(self, path: str) -> str:
        return path

    def variable_name(self, name: str, convention: NamingConvention) -> str:
        if convention is NamingConvention.ORIGINAL:
            name = apply_naming_convention(name, NamingConvention.KEBAB_CASE)
        return attribute_name(name)

    def variable_reference(self, name: str) -> str:
        return "{" + name + "}"

    def include_directive(self, target: str, *, element_id: str) -> str:
        return f"include::{target}[]"

    def variables_filename(self) -> str:
        return "variables.adoc"

    def heading(self, level: int, text: str, *, anchor: str | None = None) -> str:
        marker = "=" * max(1, min(level, 6))
        prefix = f"[[{anchor}]]\n" if anchor else ""
        return f"{prefix}{marker} {text}"

    def discrete_heading(self, level: int, text: str) -> str:
        return f"[discrete]\n{'=' * max(2, min(level, 6))} {text}"

    def list_marker(self, context: ListContext) -> str:
        symbol = "." if context.kind is ListKind.ORDERED else "*"
        return symbol * min(context.depth + 1, MAX_MARKER_DEPTH)

    def list_item(self, marker: str, main: str, blocks: Iterable[Block]) -> str:
        lines = [f"{marker} {main or '{empty}'}"]
        # Marker length of the innermost item still open at the end of ``lines``.
        open_depth = len(marker)
        for block in blocks:
            if block.role is BlockRole.LIST:
                lines.append(block.text)
                open_depth = _last_marker_depth(block.text) or open_depth
                continue
            # Each empty line above "+" climbs one level back to an ancestor item.
            lines.extend([""] * max(open_depth - len(marker), 0))
            lines.extend(["+", block.text])
            open_depth = len(marker)
        return "\n".join(lines)

    def list_block(self, items: list[str], context: ListContext, *, start: int) -> str:
        attributes: list[str] = []
        if context.needs_style_declaration:
            attributes.append(context.style.value)
        if context.kind is ListKind.ORDERED and start != 1:
            attributes.append(f"start={start}")
        header = f"[{','.join(attributes)}]\n" if attributes else ""
        return header + "\n".join(items)

    def rule(self) -> str:
        return "'''"

    def fallback_heading(self, level: int, text: str) -> str:
        return self.discrete_heading(level, text)

    def compound(self, blocks: Iterable[Block]) -> str:
        return "\n+\n".join(block.text for block in blocks)

    def finalize_document(self, content: str, state: DocumentState) -> str:
        options = self.options
        if (
            options.variables.mode is VariableMode.REFERENCE
            and options.asciidoc.include_variables_file
            and state.variables
        ):
            content = self._include_variables(content)
        return super().finalize_document(content, state)

    def _include_variables(self, content: str) -> str:
        directive = f"include::{self.variables_filename()}[]"
        lines = content.split("\n")
        for index, line in enumerate(lines[:2]):
            if line.startswith("= "):
                # Document header: attribute entries must follow the title directly.
                lines.insert(index + 1, directive)
                return "\n".join(lines)
        return f"{directive}\n\n{content}"

    def handle_admonition(
        self, kind: str, blocks: Sequence[Block], *, title: str | None = None
    ) -> str:
        texts = [block.text for block in blocks]
        if texts and not title:
            texts[0] = strip_admonition_label(texts[0])
        simple = len(blocks) == 1 and blocks[0].role is BlockRole.PARAGRAPH and not title
        return self._get_template("admonition").render(
            label=ADMONITION_LABELS.get(kind, "NOTE"),
            blocks=texts or ["{empty}"],
            title=title,
            simple=simple,
        ).strip("\n")

    def handle_table(
        self, rows: Sequence[Sequence[TableCell]], *, caption: str | None = None
    ) -> str:
        columns = max((sum(cell.colspan for cell in row) for row in rows), default=1)
        header = bool(rows) and all(cell.header for cell in rows[0])
        rendered = ["\n".join(self._table_cell(cell) for cell in row) for row in rows]
        return self._get_template("table").render(
            columns=",".join(["1"] * max(columns, 1)),
            header=header,
            rows=rendered,
            caption=caption,
        ).strip("\n")

    @staticmethod
    def _table_cell(cell: TableCell) -> str:
        span = f"{cell.colspan}+" if cell.colspan > 1 else ""
        blocks = [block.replace("|", r"\|") for block in cell.blocks]
        if len(blocks) > 1 or any("\n" in block for block in blocks):
            return f"{span}a| " + "\n\n".join(blocks)
        return f"{span}| {blocks[0] if blocks else ''}".rstrip()

    def handle_procedure(
        self,
        steps: Sequence[tuple[str, Sequence[Block]]],
        *,
        title: str | None = None,
        anchor: str | None = None,
    ) -> str:
        items = [self.list_item(".", main, blocks) for main, blocks in steps]
        return self._get_template("procedure").render(
            steps=items, title=title, anchor=anchor
        ).strip("\n")


__all__ = ["AsciiDocFormatter", "attribute_name"]
