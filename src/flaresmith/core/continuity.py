"""Numbering continuity across sibling ordered lists.

Help-authoring exports often split one logical procedure into several ``<ol>``
elements separated by a paragraph or an image. :func:`plan_list_continuity`
decides, over a flattened sequence of siblings, which lists continue the
numbering of a previous one. :func:`tag_list_continuity` applies that plan to a
tree before the converter runs by storing the start ordinal on each ordered
list.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum, auto

from bs4.element import Tag

from .attributes import coerce_attribute
from .lists import OrdinalStyle, declared_style, explicit_start
from .nodes import ElementKind, element_kind, is_blank, is_list


START_ATTRIBUTE = "data-list-start"
CONTINUED_ATTRIBUTE = "data-list-continued"
CONTINUE_MARKERS = ("madcap:continue", "data-continue")


class SiblingKind(Enum):
    ORDERED_LIST = auto()
    UNORDERED_LIST = auto()
    INTERRUPTION = auto()
    BARRIER = auto()


@dataclass(frozen=True, slots=True)
class SiblingToken:
    """One significant child of a parent element, reduced to what continuity needs."""

    kind: SiblingKind
    item_count: int = 0
    style: OrdinalStyle = OrdinalStyle.ARABIC
    explicit_start: int | None = None
    explicit_continue: bool = False


@dataclass(frozen=True, slots=True)
class ListContinuityPolicy:
    """Named policy controlling cross-sibling numbering.

    ``continue_interrupted_lists`` enables the adjacency heuristic;
    ``honour_continue_markers`` follows explicit continue markers even across
    headings.
    """

    continue_interrupted_lists: bool = True
    honour_continue_markers: bool = True


@dataclass(frozen=True, slots=True)
class ContinuityMark:
    start: int
    continued: bool = False


def plan_list_continuity(
    tokens: Sequence[SiblingToken],
    policy: ListContinuityPolicy = ListContinuityPolicy(),
) -> list[ContinuityMark | None]:
    """Return the start ordinal of every ordered list in ``tokens``.

    Non-list tokens map to ``None``. An ordered list continues the previous
    one when only interruptions separate them and both share a style.
    Unordered lists and barriers (headings, rules, blocks holding deeper lists)
    end a run. Explicit ``start`` values are kept as-is.
    """
    plan: list[ContinuityMark | None] = []
    run_end: tuple[int, OrdinalStyle] | None = None
    last_ordered: tuple[int, OrdinalStyle] | None = None

    for token in tokens:
        match token.kind:
            case SiblingKind.ORDERED_LIST:
                if (
                    token.explicit_continue
                    and policy.honour_continue_markers
                    and last_ordered is not None
                ):
                    mark = ContinuityMark(start=last_ordered[0] + 1, continued=True)
                elif token.explicit_start is not None:
                    mark = ContinuityMark(start=token.explicit_start)
                elif (
                    policy.continue_interrupted_lists
                    and run_end is not None
                    and run_end[1] is token.style
                ):
                    mark = ContinuityMark(start=run_end[0] + 1, continued=True)
                else:
                    mark = ContinuityMark(start=1)
                end = mark.start + max(token.item_count, 0) - 1
                run_end = last_ordered = (end, token.style)
                plan.append(mark)
            case SiblingKind.UNORDERED_LIST | SiblingKind.BARRIER:
                run_end = None
                plan.append(None)
            case SiblingKind.INTERRUPTION:
                plan.append(None)
    return plan


def _item_count(element: Tag) -> int:
    return sum(
        1
        for child in element.children
        if isinstance(child, Tag) and element_kind(child) is ElementKind.LIST_ITEM
    )


def _has_continue_marker(element: Tag) -> bool:
    for attribute in CONTINUE_MARKERS:
        value = coerce_attribute(element.get(attribute))
        if value is not None and value.strip().lower() in {"true", "1", "yes"}:
            return True
    return False


def sibling_token(element: Tag) -> SiblingToken:
    """Reduce an element to a continuity token."""
    match element_kind(element):
        case ElementKind.ORDERED_LIST:
            return SiblingToken(
                kind=SiblingKind.ORDERED_LIST,
                item_count=_item_count(element),
                style=declared_style(element) or OrdinalStyle.ARABIC,
                explicit_start=explicit_start(element),
                explicit_continue=_has_continue_marker(element),
            )
        case ElementKind.UNORDERED_LIST:
            return SiblingToken(kind=SiblingKind.UNORDERED_LIST)
        case ElementKind.HEADING | ElementKind.RULE | ElementKind.LIST_ITEM:
            return SiblingToken(kind=SiblingKind.BARRIER)
        case _:
            if any(is_list(descendant) for descendant in element.find_all(True)):
                return SiblingToken(kind=SiblingKind.BARRIER)
            return SiblingToken(kind=SiblingKind.INTERRUPTION)


def tag_list_continuity(
    root: Tag,
    policy: ListContinuityPolicy = ListContinuityPolicy(),
) -> int:
    """Store the planned start ordinal on every ordered list below ``root``.

    Returns the number of lists that continue a previous one.
    """
    continued = 0
    parents = [root, *root.find_all(True)]
    for parent in parents:
        siblings = [
            child for child in parent.children if isinstance(child, Tag) and not is_blank(child)
        ]
        if not any(is_list(child) for child in siblings):
            continue
        plan = plan_list_continuity([sibling_token(child) for child in siblings], policy)
        for child, mark in zip(siblings, plan):
            if mark is None:
                continue
            child[START_ATTRIBUTE] = str(mark.start)
            if mark.continued:
                child[CONTINUED_ATTRIBUTE] = "true"
                continued += 1
    return continued


__all__ = [
    "CONTINUED_ATTRIBUTE",
    "START_ATTRIBUTE",
    "ContinuityMark",
    "ListContinuityPolicy",
    "SiblingKind",
    "SiblingToken",
    "plan_list_continuity",
    "sibling_token",
    "tag_list_continuity",
]
