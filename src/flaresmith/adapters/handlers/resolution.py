"""Variable and snippet resolution handlers."""

from __future__ import annotations

from collections.abc import Mapping
import logging
from pathlib import Path

from bs4.element import Tag

from flaresmith.core.conditions import ConditionMatcher
from flaresmith.core.context import RenderContext
from flaresmith.core.diagnostics import record_event
from flaresmith.core.rules import RenderPhase, renders
from flaresmith.core.snippets import SnippetResolver
from flaresmith.core.variables import (
    VariableResolver,
    VariableSet,
    discover_variable_files,
    load_variable_set,
    variable_set_from_mapping,
)


logger = logging.getLogger(__name__)


def variable_sources(context: RenderContext) -> list[Path]:
    """Return the FLVAR files visible to the current document."""
    options = context.options.variables
    sources: list[Path] = []
    if options.discover and context.project_root is not None:
        sources.extend(discover_variable_files(context.project_root))
    sources.extend(Path(source) for source in options.sources)
    return sources


def active_variable_set(context: RenderContext) -> VariableSet:
    """Return the variable set supplied by the caller or load it from disk."""
    supplied = context.runtime.get("variables")
    if isinstance(supplied, VariableSet):
        return supplied
    if isinstance(supplied, Mapping):
        return variable_set_from_mapping(supplied)

    sources = variable_sources(context)
    if not sources:
        return VariableSet()
    variables = load_variable_set(sources, on_error=context.warn)
    record_event(
        context.emitter,
        "variables_loaded",
        {"count": len(variables), "sources": [str(path) for path in sources]},
    )
    return variables


def build_variable_resolver(context: RenderContext) -> VariableResolver:
    options = context.options.variables
    return VariableResolver(
        active_variable_set(context),
        mode=options.mode,
        naming_convention=options.naming_convention,
        formatter=context.formatter,
        include=options.include_patterns,
        exclude=options.exclude_patterns,
        prefix=options.prefix,
    )


@renders(phase=RenderPhase.RESOLVE, name="resolve_variables", auto_mark=False)
def resolve_variables(root: Tag, context: RenderContext) -> None:
    """Substitute or reference every variable placeholder."""
    resolver = build_variable_resolver(context)
    context.attach_runtime(variable_resolver=resolver)
    extracted = resolver.resolve(root, warn=context.warn)
    for name, value in (extracted or {}).items():
        context.state.remember_variable(name, value)


@renders(
    phase=RenderPhase.RESOLVE,
    name="resolve_snippets",
    auto_mark=False,
    after=("resolve_variables",),
)
def resolve_snippets(root: Tag, context: RenderContext) -> None:
    """Merge snippet fragments or replace them with include directives."""
    matcher = context.runtime.get("condition_matcher")
    if not isinstance(matcher, ConditionMatcher):
        matcher = ConditionMatcher(context.options.conditions)
    options = context.options.snippets
    source = context.source_path
    resolver = SnippetResolver(
        formatter=context.formatter,
        state=context.state,
        matcher=matcher,
        mode=options.mode,
        variables=context.runtime.get("variable_resolver"),
        base_dir=source.parent if source is not None else None,
        project_root=context.project_root,
        search_paths=list(options.search_paths),
        parser=context.options.parser,
        warn=context.warn,
    )
    count = resolver.resolve_all(root)
    if count:
        logger.debug("Resolved %d snippet placeholder(s)", count)
        record_event(
            context.emitter,
            "snippet_resolved",
            {"source": str(source) if source else None, "mode": options.mode.value},
        )


__all__ = [
    "active_variable_set",
    "build_variable_resolver",
    "resolve_snippets",
    "resolve_variables",
    "variable_sources",
]
