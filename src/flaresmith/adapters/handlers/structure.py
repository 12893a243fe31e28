"""Structural repairs run right before emission."""

from __future__ import annotations

import logging

from bs4.element import Tag

from flaresmith.core.context import RenderContext
from flaresmith.core.continuity import ListContinuityPolicy, tag_list_continuity
from flaresmith.core.normalizer import normalize_structure
from flaresmith.core.rules import RenderPhase, renders


logger = logging.getLogger(__name__)


@renders(phase=RenderPhase.STRUCTURE, name="normalize_lists", auto_mark=False)
def normalize_lists(root: Tag, context: RenderContext) -> None:
    """Reattach orphaned list content and nest detached sub-lists."""
    report = normalize_structure(root)
    if report.changed:
        logger.debug(
            "List repairs: %d orphan(s) moved, %d synthetic item(s), %d list(s) nested",
            report.orphans_moved,
            report.synthetic_items,
            report.lists_nested,
        )
    context.attach_runtime(normalization=report)


@renders(
    phase=RenderPhase.STRUCTURE,
    name="list_continuity",
    auto_mark=False,
    after=("normalize_lists",),
)
def plan_numbering(root: Tag, context: RenderContext) -> None:
    """Tag ordered lists with the ordinal they start from."""
    options = context.options.lists
    policy = ListContinuityPolicy(
        continue_interrupted_lists=options.continue_interrupted_lists,
        honour_continue_markers=options.honour_continue_markers,
    )
    continued = tag_list_continuity(root, policy)
    if continued:
        logger.debug("%d ordered list(s) continue a previous list", continued)


__all__ = ["normalize_lists", "plan_numbering"]
