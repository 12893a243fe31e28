"""List state threaded through the recursive converter."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
import re

from bs4.element import Tag

from .attributes import coerce_attribute


class ListKind(Enum):
    ORDERED = "ordered"
    UNORDERED = "unordered"


class OrdinalStyle(Enum):
    ARABIC = "arabic"
    LOWER_ALPHA = "loweralpha"
    UPPER_ALPHA = "upperalpha"
    LOWER_ROMAN = "lowerroman"
    UPPER_ROMAN = "upperroman"


_TYPE_ATTRIBUTE = {
    "1": OrdinalStyle.ARABIC,
    "a": OrdinalStyle.LOWER_ALPHA,
    "A": OrdinalStyle.UPPER_ALPHA,
    "i": OrdinalStyle.LOWER_ROMAN,
    "I": OrdinalStyle.UPPER_ROMAN,
}

_CSS_STYLES = {
    "decimal": OrdinalStyle.ARABIC,
    "decimal-leading-zero": OrdinalStyle.ARABIC,
    "lower-alpha": OrdinalStyle.LOWER_ALPHA,
    "lower-latin": OrdinalStyle.LOWER_ALPHA,
    "upper-alpha": OrdinalStyle.UPPER_ALPHA,
    "upper-latin": OrdinalStyle.UPPER_ALPHA,
    "lower-roman": OrdinalStyle.LOWER_ROMAN,
    "upper-roman": OrdinalStyle.UPPER_ROMAN,
}

_LIST_STYLE_TYPE = re.compile(r"list-style(?:-type)?\s*:\s*([\w-]+)", re.IGNORECASE)

# Nesting depth -> style readers infer without a declaration.
DEPTH_STYLES = (OrdinalStyle.ARABIC, OrdinalStyle.LOWER_ALPHA, OrdinalStyle.LOWER_ROMAN)


def declared_style(element: Tag) -> OrdinalStyle | None:
    """Return the ordinal style explicitly declared on a list element."""
    raw_type = coerce_attribute(element.get("type"))
    if raw_type and raw_type.strip() in _TYPE_ATTRIBUTE:
        return _TYPE_ATTRIBUTE[raw_type.strip()]
    style = coerce_attribute(element.get("style")) or ""
    match = _LIST_STYLE_TYPE.search(style)
    if match:
        return _CSS_STYLES.get(match.group(1).lower())
    return None


def depth_style(depth: int) -> OrdinalStyle:
    """Style implied by nesting depth alone."""
    return DEPTH_STYLES[depth % len(DEPTH_STYLES)]


def explicit_start(element: Tag) -> int | None:
    raw = coerce_attribute(element.get("start"))
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


@dataclass(frozen=True, slots=True)
class ListContext:
    """Position of the converter inside nested lists.

    ``depth`` is 0 for a top-level list. ``next_ordinal`` only matters for
    numbering continuity; nesting alone never changes it.
    """

    depth: int = 0
    kind: ListKind = ListKind.UNORDERED
    style: OrdinalStyle = OrdinalStyle.ARABIC
    next_ordinal: int = 1

    def child(self, kind: ListKind, style: OrdinalStyle, start: int = 1) -> ListContext:
        """Context for a list nested inside an item of this list."""
        return ListContext(depth=self.depth + 1, kind=kind, style=style, next_ordinal=start)

    def advance(self) -> ListContext:
        return replace(self, next_ordinal=self.next_ordinal + 1)

    @property
    def needs_style_declaration(self) -> bool:
        """Only top-level lists declare a style, and only a non-numeric one."""
        return (
            self.kind is ListKind.ORDERED
            and self.depth == 0
            and self.style is not OrdinalStyle.ARABIC
        )


@dataclass(frozen=True, slots=True)
class ContinuationState:
    """Tracks whether a list item already emitted its main text."""

    has_main_text: bool = False
    blocks_emitted: int = 0

    def after_block(self, *, main_text: bool = False) -> ContinuationState:
        return ContinuationState(
            has_main_text=self.has_main_text or main_text,
            blocks_emitted=self.blocks_emitted + 1,
        )

    @property
    def is_continuation(self) -> bool:
        return self.has_main_text or self.blocks_emitted > 0


__all__ = [
    "DEPTH_STYLES",
    "ContinuationState",
    "ListContext",
    "ListKind",
    "OrdinalStyle",
    "declared_style",
    "depth_style",
    "explicit_start",
]
