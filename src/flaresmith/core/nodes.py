"""Closed classification of document tree nodes.

Every converter dispatches on :class:`NodeKind` and :class:`ElementKind`
instead of comparing tag names, so adding a construct means extending the
enums and the ``match`` statements that consume them.
"""

from __future__ import annotations

from enum import Enum, auto
from typing import Any

from bs4.element import Comment, NavigableString, Tag

from .attributes import coerce_attribute, gather_classes


class NodeKind(Enum):
    ELEMENT = auto()
    TEXT = auto()
    COMMENT = auto()
    OTHER = auto()


class ElementKind(Enum):
    HEADING = auto()
    PARAGRAPH = auto()
    ORDERED_LIST = auto()
    UNORDERED_LIST = auto()
    LIST_ITEM = auto()
    TABLE = auto()
    ADMONITION = auto()
    COLLAPSIBLE = auto()
    PROCEDURE = auto()
    TABS = auto()
    CODE_BLOCK = auto()
    BLOCKQUOTE = auto()
    DEFINITION_LIST = auto()
    IMAGE = auto()
    FIGURE = auto()
    RULE = auto()
    CONTAINER = auto()
    LINE_BREAK = auto()
    STRONG = auto()
    EMPHASIS = auto()
    CODE = auto()
    LINK = auto()
    INLINE_CONTAINER = auto()
    RAW_INLINE = auto()
    RAW_BLOCK = auto()
    IGNORED = auto()
    UNKNOWN = auto()


BLOCK_KINDS = frozenset(
    {
        ElementKind.HEADING,
        ElementKind.PARAGRAPH,
        ElementKind.ORDERED_LIST,
        ElementKind.UNORDERED_LIST,
        ElementKind.LIST_ITEM,
        ElementKind.TABLE,
        ElementKind.ADMONITION,
        ElementKind.COLLAPSIBLE,
        ElementKind.PROCEDURE,
        ElementKind.TABS,
        ElementKind.CODE_BLOCK,
        ElementKind.BLOCKQUOTE,
        ElementKind.DEFINITION_LIST,
        ElementKind.FIGURE,
        ElementKind.RULE,
        ElementKind.CONTAINER,
        ElementKind.RAW_BLOCK,
    }
)

LIST_KINDS = frozenset({ElementKind.ORDERED_LIST, ElementKind.UNORDERED_LIST})

ADMONITION_CLASSES: dict[str, str] = {
    "note": "note",
    "mc-note": "note",
    "info": "note",
    "tip": "tip",
    "hint": "tip",
    "warning": "warning",
    "mc-warning": "warning",
    "important": "important",
    "caution": "caution",
    "danger": "danger",
    "attention": "attention",
}

RAW_INLINE_TAG = "flaresmith:raw"
RAW_BLOCK_TAG = "flaresmith:raw-block"

_HEADINGS = {f"h{level}" for level in range(1, 7)}
_STRONG = {"strong", "b"}
_EMPHASIS = {"em", "i", "cite", "dfn"}
_CODE = {"code", "kbd", "samp", "tt", "var"}
_INLINE = {
    "span",
    "sup",
    "sub",
    "u",
    "small",
    "abbr",
    "q",
    "mark",
    "font",
    "label",
    "s",
    "del",
    "ins",
    "nobr",
    "wbr",
    "time",
}
_CONTAINERS = {
    "html",
    "body",
    "div",
    "section",
    "article",
    "main",
    "header",
    "footer",
    "aside",
    "center",
    "form",
    "nav",
    "figcaption",
    "summary",
}
_IGNORED = {
    "head",
    "script",
    "style",
    "title",
    "meta",
    "link",
    "noscript",
    "iframe",
    "object",
    "embed",
    "button",
    "input",
    "madcap:keyword",
    "madcap:indexterm",
    "madcap:concept",
    "madcap:microcontent",
}


def node_kind(node: Any) -> NodeKind:
    """Return the coarse kind of a BeautifulSoup node."""
    if isinstance(node, Tag):
        return NodeKind.ELEMENT
    if isinstance(node, Comment):
        return NodeKind.COMMENT
    if isinstance(node, NavigableString):
        # Doctype, CData and processing instructions are NavigableString subclasses.
        return NodeKind.TEXT if type(node) is NavigableString else NodeKind.OTHER
    return NodeKind.OTHER


def admonition_kind(element: Tag) -> str | None:
    """Return the admonition flavour declared on ``element`` if any."""
    declared = coerce_attribute(element.get("data-admonition"))
    if declared:
        return declared.lower()
    for css_class in gather_classes(element.get("class")):
        flavour = ADMONITION_CLASSES.get(css_class.lower())
        if flavour is not None:
            return flavour
    return None


def element_kind(element: Tag) -> ElementKind:
    """Classify an element into the closed set of constructs the converter knows."""
    name = (element.name or "").lower()
    classes = {css_class.lower() for css_class in gather_classes(element.get("class"))}

    if name == RAW_INLINE_TAG:
        return ElementKind.RAW_INLINE
    if name == RAW_BLOCK_TAG:
        return ElementKind.RAW_BLOCK
    if name in _HEADINGS:
        return ElementKind.HEADING
    if name in {"p", "div", "blockquote", "aside"} and admonition_kind(element):
        return ElementKind.ADMONITION
    if name == "p":
        return ElementKind.PARAGRAPH
    if name == "ol":
        return ElementKind.ORDERED_LIST
    if name in {"ul", "menu", "dir"}:
        return ElementKind.UNORDERED_LIST
    if name == "li":
        return ElementKind.LIST_ITEM
    if name == "table":
        return ElementKind.TABLE
    if name == "details" or (name == "div" and "collapsible" in classes):
        return ElementKind.COLLAPSIBLE
    if name == "div" and "procedure" in classes:
        return ElementKind.PROCEDURE
    if name == "div" and "tabs" in classes:
        return ElementKind.TABS
    if name in {"pre", "listing"}:
        return ElementKind.CODE_BLOCK
    if name == "blockquote":
        return ElementKind.BLOCKQUOTE
    if name == "dl":
        return ElementKind.DEFINITION_LIST
    if name == "img":
        return ElementKind.IMAGE
    if name == "figure":
        return ElementKind.FIGURE
    if name == "hr":
        return ElementKind.RULE
    if name == "br":
        return ElementKind.LINE_BREAK
    if name in _STRONG:
        return ElementKind.STRONG
    if name in _EMPHASIS:
        return ElementKind.EMPHASIS
    if name in _CODE:
        return ElementKind.CODE
    if name == "a":
        return ElementKind.LINK
    if name in _IGNORED:
        return ElementKind.IGNORED
    if name in _CONTAINERS:
        return ElementKind.CONTAINER
    if name in _INLINE or name.startswith("madcap:"):
        return ElementKind.INLINE_CONTAINER
    return ElementKind.UNKNOWN


def make_raw(markup: str, *, block: bool = False) -> Tag:
    """Wrap already formatted target markup so the emitter copies it verbatim."""
    element = Tag(name=RAW_BLOCK_TAG if block else RAW_INLINE_TAG)
    element.append(NavigableString(markup))
    return element


def is_block(element: Tag) -> bool:
    """Return whether ``element`` starts a block of its own."""
    return element_kind(element) in BLOCK_KINDS


def is_list(node: Any) -> bool:
    return isinstance(node, Tag) and element_kind(node) in LIST_KINDS


def is_blank(node: Any) -> bool:
    """Return whether ``node`` is a whitespace-only text node or a comment."""
    match node_kind(node):
        case NodeKind.TEXT:
            return not str(node).strip()
        case NodeKind.COMMENT | NodeKind.OTHER:
            return True
        case NodeKind.ELEMENT:
            return False


__all__ = [
    "ADMONITION_CLASSES",
    "BLOCK_KINDS",
    "LIST_KINDS",
    "RAW_BLOCK_TAG",
    "RAW_INLINE_TAG",
    "ElementKind",
    "NodeKind",
    "admonition_kind",
    "element_kind",
    "is_blank",
    "is_block",
    "is_list",
    "make_raw",
    "node_kind",
]
