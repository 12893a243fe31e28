"""Glossary (FLGLO) loading and rendering."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
import logging
from pathlib import Path
from typing import TYPE_CHECKING
from xml.etree import ElementTree

from .conditions import ConditionMatcher, parse_conditions
from .exceptions import GlossarySourceError


if TYPE_CHECKING:  # pragma: no cover - typing only
    from flaresmith.adapters.markup.formatter import MarkupFormatter


logger = logging.getLogger(__name__)

GLOSSARY_DIRECTORY = Path("Project") / "Glossaries"


@dataclass(frozen=True, slots=True)
class GlossaryEntry:
    """A glossary entry with every term it defines."""

    id: str
    terms: tuple[str, ...]
    definition: str
    conditions: frozenset[str] = frozenset()
    link: str | None = None

    @property
    def label(self) -> str:
        return ", ".join(self.terms)


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1].lower()


def _text(element: ElementTree.Element) -> str:
    return " ".join("".join(element.itertext()).split())


def parse_glossary_element(
    root: ElementTree.Element, matcher: ConditionMatcher | None = None
) -> list[GlossaryEntry]:
    """Extract entries from a parsed ``CatapultGlossary`` tree."""
    entries: list[GlossaryEntry] = []
    for index, element in enumerate(
        node for node in root.iter() if _local(node.tag) == "glossaryentry"
    ):
        raw = element.get("conditions") or element.get("Conditions")
        conditions = parse_conditions(raw)
        if matcher is not None and matcher.first_excluded(conditions) is not None:
            continue
        terms = tuple(
            _text(node) for node in element.iter() if _local(node.tag) == "term" and _text(node)
        )
        definition_node = next(
            (node for node in element.iter() if _local(node.tag) == "definition"), None
        )
        definition = _text(definition_node) if definition_node is not None else ""
        if not terms or not definition:
            continue
        entries.append(
            GlossaryEntry(
                id=element.get("glossTerm") or f"glossary-{index}",
                terms=terms,
                definition=definition,
                conditions=conditions,
                link=definition_node.get("Link") if definition_node is not None else None,
            )
        )
    return entries


def load_glossary(path: Path, matcher: ConditionMatcher | None = None) -> list[GlossaryEntry]:
    """Parse an FLGLO file, dropping entries excluded by ``matcher``."""
    try:
        root = ElementTree.parse(path).getroot()
    except (OSError, ElementTree.ParseError) as exc:
        raise GlossarySourceError(f"Unable to parse glossary file '{path}': {exc}") from exc
    entries = parse_glossary_element(root, matcher)
    logger.debug("Loaded %d glossary entries from %s", len(entries), path)
    return entries


def discover_glossary_files(project_root: Path) -> list[Path]:
    directory = project_root / GLOSSARY_DIRECTORY
    if not directory.is_dir():
        return []
    return sorted(
        path
        for path in directory.glob("*.flglo")
        if path.is_file() and not path.name.startswith("._")
    )


def sort_entries(entries: Iterable[GlossaryEntry]) -> list[GlossaryEntry]:
    return sorted(entries, key=lambda entry: entry.terms[0].casefold())


def render_glossary(
    entries: Iterable[GlossaryEntry],
    formatter: MarkupFormatter,
    *,
    title: str | None = "Glossary",
) -> str:
    """Render entries as a glossary definition list."""
    pairs = [
        (formatter.escape_text(entry.label), formatter.escape_text(entry.definition))
        for entry in sort_entries(entries)
    ]
    parts: list[str] = []
    if title:
        parts.append(formatter.heading(1, title))
    if pairs:
        parts.append(formatter.definition_list(entries=pairs, glossary=True))
    return "\n\n".join(parts) + "\n"


__all__ = [
    "GLOSSARY_DIRECTORY",
    "GlossaryEntry",
    "discover_glossary_files",
    "load_glossary",
    "parse_glossary_element",
    "render_glossary",
    "sort_entries",
]
