"""Repairs for malformed list nesting found in authoring-tool exports.

Two passes run in a fixed order:

1. orphan repair moves every non-item child of ``ol``/``ul`` into the
   nearest preceding ``li`` (or a synthetic one when the list starts with
   stray content);
2. sibling-nesting repair moves detached sub-lists, lists that follow another
   list at the same level while carrying a different alphabetic/roman style,
   into the last item of that list.

Both passes are idempotent. Constructs they cannot classify stay where they are.
"""

from __future__ import annotations

from dataclasses import dataclass

from bs4.element import PageElement, Tag

from .lists import OrdinalStyle, declared_style
from .nodes import ElementKind, element_kind, is_blank, is_list


SYNTHETIC_ATTRIBUTE = "data-synthetic"


@dataclass(slots=True)
class NormalizationReport:
    """Counts of the repairs performed on a tree."""

    orphans_moved: int = 0
    synthetic_items: int = 0
    lists_nested: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.orphans_moved or self.synthetic_items or self.lists_nested)


def _is_item(node: PageElement) -> bool:
    return isinstance(node, Tag) and element_kind(node) is ElementKind.LIST_ITEM


def _synthetic_item(before: PageElement) -> Tag:
    item = Tag(name="li", attrs={SYNTHETIC_ATTRIBUTE: "true"})
    before.insert_before(item)
    return item


def repair_orphans(root: Tag, report: NormalizationReport | None = None) -> NormalizationReport:
    """Reattach non-item children of every list to the preceding item."""
    report = report or NormalizationReport()
    lists = [element for element in root.find_all(True) if is_list(element)]
    if is_list(root):
        lists.insert(0, root)
    for list_element in lists:
        current: Tag | None = None
        for child in list(list_element.children):
            if _is_item(child):
                current = child  # type: ignore[assignment]
                continue
            if is_blank(child):
                continue
            if current is None:
                current = _synthetic_item(child)
                report.synthetic_items += 1
            current.append(child.extract())
            report.orphans_moved += 1
    return report


def _ordinal_style(element: Tag) -> OrdinalStyle:
    return declared_style(element) or OrdinalStyle.ARABIC


def _is_detached_sublist(previous: Tag, candidate: Tag) -> bool:
    if not is_list(candidate):
        return False
    style = declared_style(candidate)
    if style is None or style is OrdinalStyle.ARABIC:
        return False
    return style is not _ordinal_style(previous)


def _next_significant(node: PageElement) -> PageElement | None:
    sibling = node.next_sibling
    while sibling is not None and is_blank(sibling):
        sibling = sibling.next_sibling
    return sibling


def repair_sibling_nesting(
    root: Tag, report: NormalizationReport | None = None
) -> NormalizationReport:
    """Move detached sub-lists into the last item of the list they follow."""
    report = report or NormalizationReport()
    for list_element in [element for element in root.find_all(True) if is_list(element)]:
        if list_element.parent is None:
            continue
        items = [child for child in list_element.children if _is_item(child)]
        if not items:
            continue
        host = items[-1]
        candidate = _next_significant(list_element)
        while isinstance(candidate, Tag) and _is_detached_sublist(list_element, candidate):
            following = _next_significant(candidate)
            host.append(candidate.extract())
            report.lists_nested += 1
            candidate = following
    return report


def normalize_structure(root: Tag) -> NormalizationReport:
    """Run orphan repair then sibling-nesting repair over ``root``."""
    report = repair_orphans(root)
    return repair_sibling_nesting(root, report)


__all__ = [
    "SYNTHETIC_ATTRIBUTE",
    "NormalizationReport",
    "normalize_structure",
    "repair_orphans",
    "repair_sibling_nesting",
]
