"""Configuration models driving the conversion pipeline.

ConversionOptions

`format` (`OutputFormat`)
: Target syntax, either `asciidoc` or `writerside-markdown` (`writerside` and
  `markdown` are accepted as aliases).

`parser` (`str`)
: BeautifulSoup backend used to parse documents. Falls back to `html.parser`
  when the backend is not installed.

VariableOptions

`mode` (`VariableMode`)
: `replace` substitutes literal values, `reference` keeps a target-syntax
  reference token and collects the values into a sidecar file.

`naming_convention` (`NamingConvention`)
: Transform applied to emitted reference names and sidecar keys.

`include_patterns` / `exclude_patterns` (`list[str]`)
: Glob patterns deciding which variables stay references in `reference` mode.

`sources` (`list[Path]`)
: Extra FLVAR files loaded on top of the ones discovered in the project.

ConditionPolicy

`exclude` (`list[str]`)
: Regular expressions matched against the local name of each condition tag.
  Content carrying a matching tag is removed together with its descendants.

`include` (`list[str]`)
: Condition tags that are always kept, even when an exclude pattern matches.

SnippetOptions

`mode` (`SnippetMode`)
: `merge` splices fragment content in place, `reference` emits include
  directives.

ListOptions

`continue_interrupted_lists` (`bool`)
: Continue numbering across sibling ordered lists separated only by non-list
  block content.

ImageOptions

`inline_max_size` (`int`)
: Images whose width or height is at most this many pixels render inline.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from pathlib import Path
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
import yaml

from .exceptions import InvalidOptionsError, UnsupportedFormatError


class OutputFormat(str, Enum):
    """Target syntaxes understood by the emitters."""

    ASCIIDOC = "asciidoc"
    WRITERSIDE = "writerside-markdown"

    @property
    def extension(self) -> str:
        return ".adoc" if self is OutputFormat.ASCIIDOC else ".md"


_FORMAT_ALIASES = {
    "asciidoc": OutputFormat.ASCIIDOC,
    "adoc": OutputFormat.ASCIIDOC,
    "writerside-markdown": OutputFormat.WRITERSIDE,
    "writerside": OutputFormat.WRITERSIDE,
    "markdown": OutputFormat.WRITERSIDE,
    "md": OutputFormat.WRITERSIDE,
}


def resolve_format(value: OutputFormat | str) -> OutputFormat:
    """Return the output format matching ``value`` or raise."""
    if isinstance(value, OutputFormat):
        return value
    candidate = _FORMAT_ALIASES.get(str(value).strip().lower())
    if candidate is None:
        supported = ", ".join(sorted({fmt.value for fmt in OutputFormat}))
        raise UnsupportedFormatError(
            f"Unsupported output format '{value}'. Expected one of: {supported}."
        )
    return candidate


class VariableMode(str, Enum):
    REPLACE = "replace"
    REFERENCE = "reference"


class NamingConvention(str, Enum):
    ORIGINAL = "original"
    CAMEL_CASE = "camelCase"
    SNAKE_CASE = "snake_case"
    KEBAB_CASE = "kebab-case"


class SnippetMode(str, Enum):
    MERGE = "merge"
    REFERENCE = "reference"


DEFAULT_EXCLUDED_CONDITIONS: tuple[str, ...] = (
    r"deprecated?",
    r"deprecation",
    r"obsolete",
    r"legacy",
    r"internal",
    r"private",
    r"draft",
    r"hidden",
    r"print[\s\-_]?only",
    r"paused?",
    r"halted?",
    r"stopped?",
    r"discontinued?",
    r"retired?",
    r"cancell?ed",
    r"abandoned",
    r"shelved",
    r"black",
    r"red",
    r"gr[ae]y",
)


class VariableOptions(BaseModel):
    """Variable resolution behaviour."""

    model_config = ConfigDict(extra="forbid")

    mode: VariableMode = VariableMode.REPLACE
    naming_convention: NamingConvention = NamingConvention.ORIGINAL
    include_patterns: list[str] = Field(default_factory=list)
    exclude_patterns: list[str] = Field(default_factory=list)
    prefix: str = ""
    instance: str | None = None
    sources: list[Path] = Field(default_factory=list)
    discover: bool = True

    @field_validator("mode", mode="before")
    @classmethod
    def _accept_flatten_alias(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().lower() == "flatten":
            return VariableMode.REPLACE
        return value


class ConditionPolicy(BaseModel):
    """Condition tags removed from the output."""

    model_config = ConfigDict(extra="forbid")

    exclude: list[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDED_CONDITIONS))
    include: list[str] = Field(default_factory=list)
    leave_comment: bool = False

    @field_validator("exclude")
    @classmethod
    def _validate_patterns(cls, value: list[str]) -> list[str]:
        for pattern in value:
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ValueError(f"invalid condition pattern '{pattern}': {exc}") from exc
        return value


class SnippetOptions(BaseModel):
    """Snippet resolution behaviour."""

    model_config = ConfigDict(extra="forbid")

    mode: SnippetMode = SnippetMode.MERGE
    search_paths: list[Path] = Field(default_factory=list)


class ListOptions(BaseModel):
    """List numbering policy."""

    model_config = ConfigDict(extra="forbid")

    continue_interrupted_lists: bool = True
    honour_continue_markers: bool = True


class ImageOptions(BaseModel):
    """Image placement thresholds."""

    model_config = ConfigDict(extra="forbid")

    inline_max_size: int = Field(default=32, ge=0)
    inline_classes: list[str] = Field(default_factory=lambda: ["IconInline"])
    base_path: str | None = None


class AsciiDocOptions(BaseModel):
    """AsciiDoc specific switches."""

    model_config = ConfigDict(extra="forbid")

    use_collapsible_blocks: bool = True
    include_variables_file: bool = True


class WritersideOptions(BaseModel):
    """Writerside Markdown specific switches."""

    model_config = ConfigDict(extra="forbid")

    use_collapsible: bool = True
    use_procedures: bool = True
    use_tabs: bool = True
    semantic_admonitions: bool = False


class ConversionOptions(BaseModel):
    """Top-level options for a conversion run."""

    model_config = ConfigDict(extra="forbid")

    format: OutputFormat = OutputFormat.ASCIIDOC
    parser: str = "lxml"
    variables: VariableOptions = Field(default_factory=VariableOptions)
    conditions: ConditionPolicy = Field(default_factory=ConditionPolicy)
    snippets: SnippetOptions = Field(default_factory=SnippetOptions)
    lists: ListOptions = Field(default_factory=ListOptions)
    images: ImageOptions = Field(default_factory=ImageOptions)
    asciidoc: AsciiDocOptions = Field(default_factory=AsciiDocOptions)
    writerside: WritersideOptions = Field(default_factory=WritersideOptions)

    @field_validator("format", mode="before")
    @classmethod
    def _resolve_format(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return resolve_format(value)
            except UnsupportedFormatError as exc:
                raise ValueError(str(exc)) from exc
        return value


def build_options(payload: Mapping[str, Any] | None = None, **overrides: Any) -> ConversionOptions:
    """Validate a raw mapping into :class:`ConversionOptions`."""
    data: dict[str, Any] = dict(payload or {})
    data.update(overrides)
    try:
        return ConversionOptions.model_validate(data)
    except ValidationError as exc:
        raise InvalidOptionsError(f"Invalid conversion options: {exc}") from exc


def load_options(path: Path | str) -> ConversionOptions:
    """Load conversion options from a YAML document."""
    source = Path(path)
    try:
        payload = yaml.safe_load(source.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise InvalidOptionsError(f"Unable to read options file '{source}': {exc}") from exc
    if not isinstance(payload, Mapping):
        raise InvalidOptionsError(f"Options file '{source}' must contain a mapping.")
    return build_options(payload)


__all__ = [
    "DEFAULT_EXCLUDED_CONDITIONS",
    "AsciiDocOptions",
    "ConditionPolicy",
    "ConversionOptions",
    "ImageOptions",
    "ListOptions",
    "NamingConvention",
    "OutputFormat",
    "SnippetMode",
    "SnippetOptions",
    "VariableMode",
    "VariableOptions",
    "WritersideOptions",
    "build_options",
    "load_options",
    "resolve_format",
]
