"""AsciiDoc and Writerside Markdown emitters."""

from __future__ import annotations

from .asciidoc import AsciiDocFormatter
from .converter import BlockConverter
from .formatter import Block, BlockRole, MarkupFormatter, TableCell
from .inline import InlineFormatter
from .renderer import FORMATTERS, MarkupRenderer, formatter_for
from .writerside import WritersideFormatter


__all__ = [
    "FORMATTERS",
    "AsciiDocFormatter",
    "Block",
    "BlockConverter",
    "BlockRole",
    "InlineFormatter",
    "MarkupFormatter",
    "MarkupRenderer",
    "TableCell",
    "WritersideFormatter",
    "formatter_for",
]
