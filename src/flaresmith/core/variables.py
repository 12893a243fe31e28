"""Variable loading and resolution.

Variable sets are authored as FLVAR XML files::

    <CatapultVariableSet>
      <Variable Name="ProductName" EvaluatedDefinition="Acme">Acme</Variable>
    </CatapultVariableSet>

Each file contributes a namespace named after its stem, so the variable above
is addressed as ``General.ProductName`` when it lives in ``General.flvar``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from fnmatch import fnmatchcase
import logging
from pathlib import Path
import re
from types import MappingProxyType
from typing import TYPE_CHECKING, cast
from xml.etree import ElementTree

from bs4.element import NavigableString, Tag

from .attributes import coerce_attribute, gather_classes
from .config import NamingConvention, VariableMode
from .exceptions import VariableSourceError
from .nodes import make_raw


if TYPE_CHECKING:  # pragma: no cover - typing only
    from flaresmith.adapters.markup.formatter import MarkupFormatter


logger = logging.getLogger(__name__)

VARIABLE_TAG = "madcap:variable"
VARIABLE_ATTRIBUTE = "data-mc-variable"
VARIABLE_CLASS = "mc-variable"
VARIABLE_SET_DIRECTORY = Path("Project") / "VariableSets"

_WORDS = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z]+|\d+")


@dataclass(frozen=True, slots=True)
class VariableDefinition:
    """A single named value loaded from a variable set."""

    namespace: str
    name: str
    value: str
    declared_type: str = "Text"
    comment: str | None = None
    source: Path | None = None

    @property
    def qualified_name(self) -> str:
        return f"{self.namespace}.{self.name}" if self.namespace else self.name


class VariableSet:
    """Immutable mapping of ``Namespace.Name`` to variable definitions.

    Definitions are grouped per source file; when two files define the same
    qualified name, lookups return the one loaded last while both remain
    available through :meth:`definitions_for`.
    """

    def __init__(self, definitions: Iterable[VariableDefinition] = ()) -> None:
        by_name: dict[str, list[VariableDefinition]] = {}
        for definition in definitions:
            by_name.setdefault(definition.qualified_name, []).append(definition)
        self._by_name = MappingProxyType({key: tuple(value) for key, value in by_name.items()})
        local: dict[str, list[str]] = {}
        for qualified, entries in self._by_name.items():
            local.setdefault(entries[-1].name, []).append(qualified)
        self._by_local_name = MappingProxyType({key: tuple(value) for key, value in local.items()})

    def __len__(self) -> int:
        return len(self._by_name)

    def __iter__(self) -> Iterator[VariableDefinition]:
        for entries in self._by_name.values():
            yield entries[-1]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.lookup(name) is not None

    def lookup(self, name: str) -> VariableDefinition | None:
        """Return the definition for ``Namespace.Name``.

        A bare ``Name`` matches only when exactly one namespace defines it.
        """
        entries = self._by_name.get(name)
        if entries:
            return entries[-1]
        candidates = self._by_local_name.get(name, ())
        if len(candidates) == 1:
            return self._by_name[candidates[0]][-1]
        return None

    def is_shared_name(self, name: str) -> bool:
        """Return whether several namespaces define the bare ``name``."""
        return len(self._by_local_name.get(name, ())) > 1

    def definitions_for(self, name: str) -> tuple[VariableDefinition, ...]:
        return self._by_name.get(name, ())

    def merged(self, other: VariableSet) -> VariableSet:
        """Return a new set holding the definitions of both sets, ``other`` last."""
        ordered = [entry for entries in self._by_name.values() for entry in entries]
        ordered.extend(entry for entries in other._by_name.values() for entry in entries)
        return VariableSet(ordered)

    def as_dict(self) -> dict[str, str]:
        return {definition.qualified_name: definition.value for definition in self}


def parse_flvar(path: Path, *, namespace: str | None = None) -> list[VariableDefinition]:
    """Parse a FLVAR file into variable definitions."""
    try:
        tree = ElementTree.parse(path)
    except (ElementTree.ParseError, OSError) as exc:
        raise VariableSourceError(f"Unable to parse variable file '{path}': {exc}") from exc
    return parse_flvar_element(tree.getroot(), namespace=namespace or path.stem, source=path)


def parse_flvar_string(
    payload: str, *, namespace: str, source: Path | None = None
) -> list[VariableDefinition]:
    try:
        root = ElementTree.fromstring(payload)
    except ElementTree.ParseError as exc:
        raise VariableSourceError(f"Unable to parse variable set '{namespace}': {exc}") from exc
    return parse_flvar_element(root, namespace=namespace, source=source)


def parse_flvar_element(
    root: ElementTree.Element, *, namespace: str, source: Path | None = None
) -> list[VariableDefinition]:
    definitions: list[VariableDefinition] = []
    for element in root.iter():
        if _local_tag(element.tag) != "Variable":
            continue
        name = (element.get("Name") or "").strip()
        if not name:
            continue
        text = "".join(element.itertext()).strip()
        value = element.get("EvaluatedDefinition") or text or element.get("Definition") or ""
        definitions.append(
            VariableDefinition(
                namespace=namespace,
                name=name,
                value=value.strip(),
                declared_type=element.get("Type") or "Text",
                comment=element.get("Comment") or None,
                source=source,
            )
        )
    return definitions


def _local_tag(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def find_project_root(path: Path) -> Path | None:
    """Return the nearest ancestor holding a ``Content`` directory."""
    start = path if path.is_dir() else path.parent
    for candidate in (start, *start.parents):
        if (candidate / "Content").is_dir():
            return candidate
    return None


def discover_variable_files(project_root: Path) -> list[Path]:
    """Return the FLVAR files of a project, ignoring resource-fork artefacts."""
    directory = project_root / VARIABLE_SET_DIRECTORY
    if not directory.is_dir():
        return []
    return sorted(
        path
        for path in directory.glob("*.flvar")
        if path.is_file() and not path.name.startswith("._")
    )


def load_variable_set(
    sources: Iterable[Path],
    *,
    on_error: Callable[[str], None] | None = None,
) -> VariableSet:
    """Load every readable source into a single set, skipping malformed files."""
    definitions: list[VariableDefinition] = []
    for source in sources:
        try:
            definitions.extend(parse_flvar(Path(source)))
        except VariableSourceError as exc:
            logger.debug("skipping variable source %s", source, exc_info=exc)
            if on_error is not None:
                on_error(str(exc))
    return VariableSet(definitions)


def split_words(name: str) -> list[str]:
    words: list[str] = []
    for chunk in re.split(r"[^A-Za-z0-9]+", name):
        words.extend(_WORDS.findall(chunk))
    return words


def apply_naming_convention(name: str, convention: NamingConvention) -> str:
    """Rename ``name`` according to ``convention``."""
    if convention is NamingConvention.ORIGINAL:
        return name
    words = split_words(name)
    if not words:
        return name
    match convention:
        case NamingConvention.CAMEL_CASE:
            head, *tail = words
            return head.lower() + "".join(word[:1].upper() + word[1:].lower() for word in tail)
        case NamingConvention.SNAKE_CASE:
            return "_".join(word.lower() for word in words)
        case NamingConvention.KEBAB_CASE:
            return "-".join(word.lower() for word in words)
    return name


def is_reference_eligible(
    definition: VariableDefinition,
    include: Iterable[str] = (),
    exclude: Iterable[str] = (),
) -> bool:
    """Return whether a variable should stay a reference according to glob filters."""
    names = (definition.qualified_name, definition.name)
    include = list(include)
    if include and not any(fnmatchcase(name, pattern) for pattern in include for name in names):
        return False
    return not any(fnmatchcase(name, pattern) for pattern in exclude for name in names)


def placeholder_name(element: Tag) -> str | None:
    """Return the variable requested by a placeholder element, if it is one."""
    if (element.name or "").lower() == VARIABLE_TAG:
        return (coerce_attribute(element.get("name")) or "").strip() or None
    declared = coerce_attribute(element.get(VARIABLE_ATTRIBUTE))
    if declared:
        return declared.strip()
    classes = gather_classes(element.get("class"))
    if VARIABLE_CLASS in classes:
        for css_class in classes:
            if "." in css_class:
                return css_class
    return None


def find_placeholders(root: Tag) -> list[tuple[Tag, str]]:
    placeholders: list[tuple[Tag, str]] = []
    for element in root.find_all(True):
        name = placeholder_name(element)
        if name:
            placeholders.append((element, name))
    return placeholders


class VariableResolver:
    """Replace variable placeholders by values or by reference tokens."""

    def __init__(
        self,
        variables: VariableSet,
        *,
        mode: VariableMode = VariableMode.REPLACE,
        naming_convention: NamingConvention = NamingConvention.ORIGINAL,
        formatter: MarkupFormatter | None = None,
        include: Iterable[str] = (),
        exclude: Iterable[str] = (),
        prefix: str = "",
    ) -> None:
        if mode is VariableMode.REFERENCE and formatter is None:
            raise ValueError("reference mode requires a formatter to build tokens")
        self.variables = variables
        self.mode = mode
        self.naming_convention = naming_convention
        self.formatter = formatter
        self.include = tuple(include)
        self.exclude = tuple(exclude)
        self.prefix = prefix

    def reference_name(self, definition: VariableDefinition) -> str:
        """Return the token for ``definition``.

        The bare variable name is used unless another namespace defines it too,
        in which case the namespace is kept so both values survive in the sidecar.
        """
        base = definition.name
        if definition.namespace and self.variables.is_shared_name(definition.name):
            base = definition.qualified_name
        name = f"{self.prefix}{apply_naming_convention(base, self.naming_convention)}"
        if self.formatter is not None:
            return self.formatter.variable_name(name, self.naming_convention)
        return name

    def resolve(
        self,
        root: Tag,
        *,
        warn: Callable[[str], None] | None = None,
    ) -> dict[str, str] | None:
        """Resolve every placeholder below ``root`` in place.

        Returns the sidecar definitions collected in reference mode, ``None`` in
        replace mode.
        """
        extracted: dict[str, str] = {}
        shared_warned: set[str] = set()
        for element, requested in find_placeholders(root):
            if element.parent is None:
                continue
            definition = self.variables.lookup(requested)
            if definition is None:
                if warn is not None:
                    warn(f"Variable '{requested}' is not defined")
                element.replace_with(NavigableString(requested))
                continue
            if self.mode is VariableMode.REFERENCE and is_reference_eligible(
                definition, self.include, self.exclude
            ):
                formatter = cast("MarkupFormatter", self.formatter)
                token_name = self.reference_name(definition)
                shared = self.variables.is_shared_name(definition.name)
                if warn is not None and shared and token_name not in shared_warned:
                    shared_warned.add(token_name)
                    warn(
                        f"Variable name '{definition.name}' is defined in several namespaces; "
                        f"'{definition.qualified_name}' is referenced as '{token_name}'"
                    )
                extracted[token_name] = definition.value
                token = formatter.variable_reference(token_name)
                element.replace_with(make_raw(token))
                continue
            element.replace_with(NavigableString(definition.value))
        if self.mode is VariableMode.REFERENCE:
            return extracted
        return None


def resolve_variables(
    root: Tag,
    variables: VariableSet,
    mode: VariableMode,
    naming_convention: NamingConvention,
    *,
    formatter: MarkupFormatter | None = None,
    warn: Callable[[str], None] | None = None,
) -> dict[str, str] | None:
    """Functional entry point mirroring :meth:`VariableResolver.resolve`."""
    resolver = VariableResolver(
        variables, mode=mode, naming_convention=naming_convention, formatter=formatter
    )
    return resolver.resolve(root, warn=warn)


def variable_set_from_mapping(values: Mapping[str, str]) -> VariableSet:
    """Build a set from ``{"Namespace.Name": value}`` pairs."""
    definitions = []
    for qualified, value in values.items():
        namespace, _, name = qualified.rpartition(".")
        definitions.append(VariableDefinition(namespace=namespace, name=name, value=str(value)))
    return VariableSet(definitions)


__all__ = [
    "VariableDefinition",
    "VariableResolver",
    "VariableSet",
    "apply_naming_convention",
    "discover_variable_files",
    "find_placeholders",
    "find_project_root",
    "is_reference_eligible",
    "load_variable_set",
    "parse_flvar",
    "parse_flvar_string",
    "placeholder_name",
    "resolve_variables",
    "split_words",
    "variable_set_from_mapping",
]
