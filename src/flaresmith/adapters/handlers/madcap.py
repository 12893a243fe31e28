"""Rewrite MadCap authoring elements into plain HTML constructs."""

from __future__ import annotations

from bs4.element import NavigableString, Tag

from flaresmith.core.attributes import coerce_attribute
from flaresmith.core.context import RenderContext
from flaresmith.core.rules import RenderPhase, renders


DEFAULT_DROPDOWN_TITLE = "More Information"


def _children_named(element: Tag, name: str) -> list[Tag]:
    return [
        child
        for child in element.find_all(True)
        if (child.name or "").lower() == name
        and child.find_parent(lambda tag: (tag.name or "").lower() == "madcap:dropdown")
        is element
    ]


@renders("madcap:dropdown", phase=RenderPhase.NORMALIZE, name="dropdowns")
def rewrite_dropdown(element: Tag, context: RenderContext) -> None:
    """Turn ``MadCap:dropDown`` into ``div.collapsible`` carrying its hotspot title."""
    title = ""
    for hotspot in _children_named(element, "madcap:dropdownhotspot"):
        title = " ".join(hotspot.get_text().split())
        if title:
            break
    for head in _children_named(element, "madcap:dropdownhead"):
        head.decompose()
    for hotspot in _children_named(element, "madcap:dropdownhotspot"):
        hotspot.decompose()
    for body in _children_named(element, "madcap:dropdownbody"):
        body.unwrap()

    # Renamed in place so the walker still visits the body.
    element.name = "div"
    element.attrs = {
        "class": ["collapsible"],
        "data-title": title or DEFAULT_DROPDOWN_TITLE,
    }


@renders(
    "madcap:expanding",
    "madcap:expandinghead",
    "madcap:expandingbody",
    "madcap:expandingtext",
    "madcap:toggler",
    phase=RenderPhase.NORMALIZE,
    name="unwrap_togglers",
    after_children=True,
)
def unwrap_togglers(element: Tag, _context: RenderContext) -> None:
    """Expanding text and togglers become ordinary inline content."""
    element.unwrap()


@renders("madcap:xref", phase=RenderPhase.NORMALIZE, name="cross_references")
def rewrite_cross_reference(element: Tag, _context: RenderContext) -> None:
    """Rename ``MadCap:xref`` to a plain anchor."""
    href = coerce_attribute(element.get("href"))
    element.name = "a"
    element.attrs = {"href": href} if href else {}
    if not element.get_text(strip=True) and href:
        element.append(NavigableString(href))


@renders(
    "madcap:keyword",
    "madcap:indexterm",
    "madcap:concept",
    "madcap:popupbody",
    phase=RenderPhase.NORMALIZE,
    name="index_markers",
)
def drop_index_markers(element: Tag, _context: RenderContext) -> None:
    """Index markers and popup bodies have no counterpart in the output."""
    element.decompose()


@renders(
    "madcap:glossaryterm",
    "madcap:popup",
    "madcap:popuphead",
    phase=RenderPhase.NORMALIZE,
    name="unwrap_glossary_terms",
    after_children=True,
)
def unwrap_glossary_terms(element: Tag, _context: RenderContext) -> None:
    element.unwrap()


__all__ = [
    "DEFAULT_DROPDOWN_TITLE",
    "drop_index_markers",
    "rewrite_cross_reference",
    "rewrite_dropdown",
    "unwrap_glossary_terms",
    "unwrap_togglers",
]
