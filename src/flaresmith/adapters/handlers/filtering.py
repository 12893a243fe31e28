"""Condition filtering applied before anything else touches the tree."""

from __future__ import annotations

from bs4.element import Tag

from flaresmith.core.conditions import ConditionDecision, ConditionMatcher, filter_tree
from flaresmith.core.context import RenderContext
from flaresmith.core.diagnostics import record_event
from flaresmith.core.rules import RenderPhase, renders
from flaresmith.core.snippets import is_snippet_placeholder


@renders(phase=RenderPhase.FILTER, name="condition_filter", auto_mark=False)
def filter_conditional_content(root: Tag, context: RenderContext) -> None:
    """Drop every subtree tagged with an excluded condition."""
    matcher = ConditionMatcher(context.options.conditions)
    context.attach_runtime(condition_matcher=matcher)

    def on_drop(_element: Tag, decision: ConditionDecision) -> None:
        if decision.matched:
            context.state.record_removed_condition(decision.matched)

    # Snippet placeholders keep their effective set so fragments inherit it.
    dropped = filter_tree(root, matcher, on_drop=on_drop, annotate=is_snippet_placeholder)
    if dropped:
        record_event(
            context.emitter,
            "conditions_filtered",
            {"dropped": dropped, "tags": dict(context.state.removed_conditions)},
        )


__all__ = ["filter_conditional_content"]
