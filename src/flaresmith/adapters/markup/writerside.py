"""Writerside Markdown emitter."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
import re
from typing import ClassVar

from flaresmith.core.config import NamingConvention, OutputFormat
from flaresmith.core.lists import ListContext, ListKind, OrdinalStyle

from .formatter import (
    Block,
    BlockRole,
    MarkupFormatter,
    TableCell,
    indent_block,
    strip_admonition_label,
    xml_attribute,
)


QUOTE_STYLES = {
    "note": "note",
    "info": "note",
    "tip": "tip",
    "warning": "warning",
    "important": "warning",
    "caution": "warning",
    "danger": "warning",
    "attention": "warning",
}

LIST_TYPES = {
    OrdinalStyle.LOWER_ALPHA: "alpha-lower",
    OrdinalStyle.UPPER_ALPHA: "alpha-upper",
    OrdinalStyle.LOWER_ROMAN: "roman-lower",
    OrdinalStyle.UPPER_ROMAN: "roman-upper",
}

_MARKDOWN_SPECIALS = re.compile(r"([*`\\]|<(?=[A-Za-z/!]))")


def quote_lines(text: str) -> str:
    return "\n".join(f"> {line}" if line.strip() else ">" for line in text.split("\n"))


class WritersideFormatter(MarkupFormatter):
    format: ClassVar[OutputFormat] = OutputFormat.WRITERSIDE
    extension: ClassVar[str] = ".md"
    template_subdir: ClassVar[str] = "writerside"

    def escape_text(self, text: str) -> str:
        return _MARKDOWN_SPECIALS.sub(r"\\\1", text)

    def strong(self, text: str) -> str:
        return f"**{text}**"

    def emphasis(self, text: str) -> str:
        return f"*{text}*"

    def code(self, text: str) -> str:
        fence = "``" if "`" in text else "`"
        padding = " " if text.startswith("`") or text.endswith("`") else ""
        return f"{fence}{padding}{text}{padding}{fence}"

    def line_break(self) -> str:
        return "<br/>"

    def link(self, href: str, text: str, *, kind: str) -> str:
        label = text.replace("]", r"\]") or href
        target = href if kind in {"anchor", "document"} else self.url(href)
        return f"[{label}]({target})"

    def inline_image(self, src: str, alt: str, *, width: int | None, height: int | None) -> str:
        return f'![{alt}]({self.url(src)}){{style="inline"}}'

    def block_image(
        self,
        src: str,
        alt: str,
        *,
        width: int | None = None,
        height: int | None = None,
        caption: str | None = None,
    ) -> str:
        attributes = []
        if width:
            attributes.append(f'width="{width}"')
        if height:
            attributes.append(f'height="{height}"')
        return self.figure(
            src=self.url(src),
            alt=alt,
            caption=caption.replace('"', "'") if caption else None,
            attributes=" ".join(attributes),
        )

    def document_target(self, path: str) -> str:
        path = path.replace(" ", "-")
        return path.removeprefix("Content/")

    def variable_name(self, name: str, convention: NamingConvention) -> str:
        return re.sub(r"[^\w.-]", "_", name)

    def variable_reference(self, name: str) -> str:
        return f'<var name="{xml_attribute(name)}"/>'

    def include_directive(self, target: str, *, element_id: str) -> str:
        return (
            f'<include from="{xml_attribute(self.document_target(target))}" '
            f'element-id="{xml_attribute(element_id)}"/>'
        )

    def variables_filename(self) -> str:
        return "v.list"

    def heading(self, level: int, text: str, *, anchor: str | None = None) -> str:
        marker = "#" * max(1, min(level, 6))
        suffix = f' {{id="{anchor}"}}' if anchor else ""
        return f"{marker} {text}{suffix}"

    def fallback_heading(self, level: int, text: str) -> str:
        return self.heading(max(2, min(level, 6)), text)

    def list_marker(self, context: ListContext) -> str:
        if context.kind is ListKind.ORDERED:
            return f"{context.next_ordinal}."
        return "-"

    def list_item(self, marker: str, main: str, blocks: Iterable[Block]) -> str:
        width = len(marker) + 1
        parts = [f"{marker} " + indent_block(main, width).lstrip(" ") if main else marker]
        for block in blocks:
            separator = "\n" if block.role is BlockRole.LIST else "\n\n"
            parts.append(separator + indent_block(block.text, width))
        return "".join(parts)

    def list_block(self, items: list[str], context: ListContext, *, start: int) -> str:
        text = "\n".join(items)
        if context.needs_style_declaration and context.style in LIST_TYPES:
            text += f'\n{{type="{LIST_TYPES[context.style]}"}}'
        return text

    def rule(self) -> str:
        return "---"

    def handle_admonition(
        self, kind: str, blocks: Sequence[Block], *, title: str | None = None
    ) -> str:
        texts = [block.text for block in blocks]
        if texts and not title:
            texts[0] = strip_admonition_label(texts[0])
        body = "\n\n".join(texts)
        style = QUOTE_STYLES.get(kind, "note")
        semantic = self.options.writerside.semantic_admonitions
        return self._get_template("admonition").render(
            body=body,
            quoted=quote_lines(body),
            style=style,
            title=title,
            semantic=semantic,
        ).strip("\n")

    def handle_table(
        self, rows: Sequence[Sequence[TableCell]], *, caption: str | None = None
    ) -> str:
        columns = max((sum(cell.colspan for cell in row) for row in rows), default=1)
        rendered = [self._table_row(row, columns) for row in rows]
        return self._get_template("table").render(
            header=rendered[0] if rendered else self._table_row([], columns),
            separator="|" + "|".join(["---"] * columns) + "|",
            rows=rendered[1:],
            caption=caption,
        ).strip("\n")

    @staticmethod
    def _table_row(row: Sequence[TableCell], columns: int) -> str:
        cells: list[str] = []
        for cell in row:
            cells.append(cell.text.replace("|", r"\|"))
            cells.extend([""] * (cell.colspan - 1))
        cells.extend([""] * (columns - len(cells)))
        return "| " + " | ".join(cells) + " |"

    def handle_procedure(
        self,
        steps: Sequence[tuple[str, Sequence[Block]]],
        *,
        title: str | None = None,
        anchor: str | None = None,
    ) -> str:
        rendered = [(main, [block.text for block in blocks]) for main, blocks in steps]
        return self._get_template("procedure").render(
            steps=rendered, title=title, anchor=anchor
        ).strip("\n")


__all__ = ["WritersideFormatter", "quote_lines"]
