"""Rule declaration and execution engine for the tree rewriting passes.

Handlers declare what they rewrite through the ``@renders`` decorator, which
attaches a :class:`RuleSpec` to the callable. The :class:`RenderEngine`
binds those specs into :class:`Rule` objects, files them per phase and tag in a
:class:`RenderRegistry` and applies them phase by phase over the parsed
BeautifulSoup tree.

Phases run in declaration order:

`FILTER`
: drop content whose authoring conditions exclude it from the output.

`RESOLVE`
: substitute variables and splice snippets so later passes see final content.

`NORMALIZE`
: rewrite authoring-tool elements (drop-downs, cross references, index
  markers) into plain HTML constructs.

`STRUCTURE`
: repair malformed list nesting and tag numbering continuity before the
  emitter walks the tree.

Rules without tags are document rules: they receive the tree root once, before
the depth-first walk of their phase.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import Enum, auto
import heapq
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:  # pragma: no cover - typing only
    from bs4.element import Tag

    from .context import RenderContext


class RenderPhase(Enum):
    """Ordered passes executed while mutating the parsed tree."""

    FILTER = auto()
    RESOLVE = auto()
    NORMALIZE = auto()
    STRUCTURE = auto()


RuleCallable = Callable[[Any, "RenderContext"], None]

DOCUMENT_NODE = "__document__"
_SPEC_ATTRIBUTE = "__render_rule__"


@dataclass(frozen=True, slots=True)
class RuleSpec:
    """Declaration recorded by ``@renders``."""

    phase: RenderPhase
    tags: tuple[str, ...]
    priority: int = 0
    name: str | None = None
    auto_mark: bool = True
    after_children: bool = False
    before: tuple[str, ...] = ()
    after: tuple[str, ...] = ()

    @property
    def targets_document(self) -> bool:
        return self.tags == (DOCUMENT_NODE,)

    def bind(self, handler: RuleCallable) -> Rule:
        name = self.name or getattr(handler, "__name__", type(handler).__name__)
        return Rule(name=name, spec=self, handler=handler)


@dataclass(frozen=True, slots=True)
class Rule:
    """A declaration bound to its handler."""

    name: str
    spec: RuleSpec
    handler: RuleCallable

    @property
    def phase(self) -> RenderPhase:
        return self.spec.phase

    @property
    def priority(self) -> int:
        return self.spec.priority


def rule_spec_of(handler: Any) -> RuleSpec | None:
    """Return the spec attached to ``handler`` by ``@renders``, if any."""
    spec = getattr(handler, _SPEC_ATTRIBUTE, None)
    if spec is None and hasattr(handler, "__func__"):
        spec = getattr(handler.__func__, _SPEC_ATTRIBUTE, None)
    return spec if isinstance(spec, RuleSpec) else None


def order_rules(rules: Sequence[Rule]) -> list[Rule]:
    """Order rules by their before/after constraints, then priority and name.

    Constraints naming rules absent from ``rules`` are ignored. Raises
    ``RuntimeError`` when the constraints form a cycle.
    """
    if len(rules) <= 1:
        return list(rules)

    position: dict[str, int] = {}
    for index, rule in enumerate(rules):
        position.setdefault(rule.name, index)

    successors: list[set[int]] = [set() for _ in rules]
    for index, rule in enumerate(rules):
        for name in rule.spec.before:
            if name in position:
                successors[index].add(position[name])
        for name in rule.spec.after:
            if name in position:
                successors[position[name]].add(index)

    pending = [0] * len(rules)
    for targets in successors:
        for target in targets:
            pending[target] += 1

    def key(index: int) -> tuple[int, str, int]:
        return (rules[index].priority, rules[index].name, index)

    ready = [key(index) for index, count in enumerate(pending) if count == 0]
    heapq.heapify(ready)
    ordered: list[Rule] = []
    while ready:
        *_, index = heapq.heappop(ready)
        ordered.append(rules[index])
        for target in successors[index]:
            pending[target] -= 1
            if pending[target] == 0:
                heapq.heappush(ready, key(target))

    if len(ordered) != len(rules):
        stuck = sorted(rule.name for rule in rules if rule not in ordered)
        raise RuntimeError("Rule ordering constraints form a cycle: " + ", ".join(stuck))
    return ordered


class RenderRegistry:
    """Rules filed by phase and lower-cased tag name."""

    def __init__(self) -> None:
        self._buckets: dict[tuple[RenderPhase, str], list[Rule]] = {}

    def register(self, rule: Rule) -> None:
        targets = (DOCUMENT_NODE,) if rule.spec.targets_document else rule.spec.tags
        for tag in targets:
            key = (rule.phase, tag.lower())
            self._buckets[key] = order_rules([*self._buckets.get(key, ()), rule])

    def rules_for_phase(self, phase: RenderPhase) -> dict[str, tuple[Rule, ...]]:
        return {
            tag: tuple(rules) for (owner, tag), rules in self._buckets.items() if owner is phase
        }

    def iter_phase(self, phase: RenderPhase) -> Iterable[Rule]:
        for rules in self.rules_for_phase(phase).values():
            yield from rules

    def describe(self) -> list[dict[str, object]]:
        """Return a serialisable snapshot of the registered rules."""
        return [
            {
                "phase": phase.name,
                "tag": tag,
                "name": rule.name,
                "priority": rule.priority,
                "order": order,
            }
            for phase in RenderPhase
            for tag, rules in sorted(self.rules_for_phase(phase).items())
            for order, rule in enumerate(rules)
        ]


def renders(
    *tags: str,
    phase: RenderPhase = RenderPhase.NORMALIZE,
    priority: int = 0,
    name: str | None = None,
    auto_mark: bool = True,
    after_children: bool = False,
    before: Iterable[str] = (),
    after: Iterable[str] = (),
) -> Callable[[RuleCallable], RuleCallable]:
    """Declare a tree rewriting handler; without tags it is a document rule."""
    spec = RuleSpec(
        phase=phase,
        tags=tuple(tags) or (DOCUMENT_NODE,),
        priority=priority,
        name=name,
        auto_mark=auto_mark,
        after_children=after_children,
        before=tuple(before),
        after=tuple(after),
    )

    def decorator(handler: RuleCallable) -> RuleCallable:
        setattr(handler, _SPEC_ATTRIBUTE, spec)
        return handler

    return decorator


class RenderEngine:
    """Run registered rules over a tree, one phase at a time."""

    def __init__(self, registry: RenderRegistry | None = None) -> None:
        self.registry = registry or RenderRegistry()

    def collect_from(self, owner: Any) -> None:
        """Register every decorated attribute of a module, class or object."""
        for attribute in dir(owner):
            handler = getattr(owner, attribute)
            spec = rule_spec_of(handler)
            if spec is not None:
                self.registry.register(spec.bind(handler))

    def register(self, handler: RuleCallable) -> None:
        spec = rule_spec_of(handler)
        if spec is None:
            raise TypeError("Handler must be decorated with @renders")
        self.registry.register(spec.bind(handler))

    def run(self, root: Tag, context: RenderContext) -> None:
        for phase in RenderPhase:
            context.enter_phase(phase)
            rules = self.registry.rules_for_phase(phase)
            for rule in rules.get(DOCUMENT_NODE, ()):
                self._apply(rule, root, context)
            self._walk(root, rules, context)

    @staticmethod
    def _detached(node: Tag, context: RenderContext) -> bool:
        return node.parent is None and node is not context.document

    def _apply(self, rule: Rule, node: Tag, context: RenderContext) -> None:
        spec = rule.spec
        if spec.auto_mark and context.is_processed(node):
            return
        rule.handler(node, context)
        if spec.auto_mark:
            context.mark_processed(node)

    def _dispatch(
        self,
        node: Tag,
        rules: dict[str, tuple[Rule, ...]],
        context: RenderContext,
        *,
        after_children: bool,
    ) -> None:
        for rule in rules.get((node.name or "").lower(), ()):
            if rule.spec.after_children != after_children:
                continue
            self._apply(rule, node, context)
            if self._detached(node, context):
                return

    def _walk(self, node: Tag, rules: dict[str, tuple[Rule, ...]], context: RenderContext) -> None:
        self._dispatch(node, rules, context, after_children=False)
        # A rule may have removed the node.
        if self._detached(node, context):
            return
        for child in list(node.children):
            if getattr(child, "name", None):
                self._walk(child, rules, context)
        self._dispatch(node, rules, context, after_children=True)


__all__ = [
    "DOCUMENT_NODE",
    "RenderEngine",
    "RenderPhase",
    "RenderRegistry",
    "Rule",
    "RuleSpec",
    "order_rules",
    "renders",
    "rule_spec_of",
]
