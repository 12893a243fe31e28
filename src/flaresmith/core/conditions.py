"""Condition filtering for authoring-tool conditional text.

Conditions are attached to elements through ``madcap:conditions`` (or the
``data-mc-conditions`` attribute found in published output). A node's effective
condition set is the union of its own tags and the tags of all its ancestors;
a node whose effective set contains an excluded tag is removed together with
its whole subtree.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass
import re

from bs4 import BeautifulSoup
from bs4.element import Comment, Tag

from .attributes import coerce_attribute
from .config import ConditionPolicy


CONDITION_ATTRIBUTES = ("madcap:conditions", "data-mc-conditions")
EFFECTIVE_CONDITIONS_ATTRIBUTE = "data-effective-conditions"

_SEPARATORS = re.compile(r"[,;\s]+")
_WORDS = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z]+|\d+")


@dataclass(frozen=True, slots=True)
class ConditionDecision:
    """Outcome of evaluating a single node."""

    keep: bool
    conditions: frozenset[str]
    matched: str | None = None


def parse_conditions(value: object) -> frozenset[str]:
    """Split a raw condition attribute into tags; anything malformed yields no tags."""
    text = coerce_attribute(value)
    if not text:
        return frozenset()
    return frozenset(tag for tag in _SEPARATORS.split(text.strip()) if tag)


def own_conditions(element: Tag) -> frozenset[str]:
    tags: set[str] = set()
    for attribute in CONDITION_ATTRIBUTES:
        tags.update(parse_conditions(element.attrs.get(attribute)))
    return frozenset(tags)


class ConditionMatcher:
    """Compiled view of a :class:`ConditionPolicy`."""

    def __init__(self, policy: ConditionPolicy | None = None) -> None:
        self.policy = policy or ConditionPolicy()
        self._patterns = [re.compile(pattern, re.IGNORECASE) for pattern in self.policy.exclude]
        self._included = {tag.lower() for tag in self.policy.include}

    def is_excluded(self, tag: str) -> bool:
        """Return whether a single condition tag removes content."""
        local = tag.rsplit(".", 1)[-1]
        if tag.lower() in self._included or local.lower() in self._included:
            return False
        candidates = [local, *_WORDS.findall(local)]
        return any(
            pattern.fullmatch(candidate)
            for pattern in self._patterns
            for candidate in candidates
        )

    def first_excluded(self, tags: Iterable[str]) -> str | None:
        for tag in sorted(tags):
            if self.is_excluded(tag):
                return tag
        return None


def evaluate(
    element: Tag,
    inherited: frozenset[str],
    matcher: ConditionMatcher,
) -> ConditionDecision:
    """Decide whether ``element`` survives given the conditions inherited from its ancestors."""
    effective = inherited | own_conditions(element)
    matched = matcher.first_excluded(effective)
    return ConditionDecision(keep=matched is None, conditions=effective, matched=matched)


def filter_tree(
    root: Tag,
    matcher: ConditionMatcher,
    *,
    inherited: frozenset[str] = frozenset(),
    on_drop: Callable[[Tag, ConditionDecision], None] | None = None,
    annotate: Callable[[Tag], bool] | None = None,
) -> int:
    """Remove excluded subtrees below ``root`` and return how many were dropped.

    Kept elements lose their condition attributes, so filtering an already
    filtered tree is a no-op. Elements selected by ``annotate`` keep their
    effective set in ``data-effective-conditions`` for later passes.
    """
    dropped = 0
    leave_comment = matcher.policy.leave_comment
    stack: list[tuple[Tag, frozenset[str]]] = [(root, inherited)]
    while stack:
        parent, parent_conditions = stack.pop()
        for child in list(parent.children):
            if not isinstance(child, Tag):
                continue
            decision = evaluate(child, parent_conditions, matcher)
            if not decision.keep:
                dropped += 1
                if on_drop is not None:
                    on_drop(child, decision)
                if leave_comment:
                    tags = ", ".join(sorted(own_conditions(child) or decision.conditions))
                    child.replace_with(Comment(f" Removed content with conditions: {tags} "))
                else:
                    child.decompose()
                continue
            for attribute in CONDITION_ATTRIBUTES:
                child.attrs.pop(attribute, None)
            if annotate is not None and decision.conditions and annotate(child):
                child[EFFECTIVE_CONDITIONS_ATTRIBUTE] = ",".join(sorted(decision.conditions))
            stack.append((child, decision.conditions))
    return dropped


def root_conditions(soup: BeautifulSoup) -> frozenset[str]:
    """Return the conditions declared on a fragment's ``html`` or ``body`` element."""
    tags: set[str] = set()
    for name in ("html", "body"):
        element = soup.find(name)
        if isinstance(element, Tag):
            tags.update(own_conditions(element))
    return frozenset(tags)


def collect_conditions(root: Tag) -> Counter[str]:
    """Count every condition tag used below ``root``."""
    usage: Counter[str] = Counter()
    elements = [root, *root.find_all(True)]
    for element in elements:
        usage.update(own_conditions(element))
    return usage


__all__ = [
    "CONDITION_ATTRIBUTES",
    "EFFECTIVE_CONDITIONS_ATTRIBUTE",
    "ConditionDecision",
    "ConditionMatcher",
    "collect_conditions",
    "evaluate",
    "filter_tree",
    "own_conditions",
    "parse_conditions",
    "root_conditions",
]
