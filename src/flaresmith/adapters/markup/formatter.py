"""Template-backed formatters shared by the AsciiDoc and Writerside emitters."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
import re
from typing import TYPE_CHECKING, Any, ClassVar

from jinja2 import Environment, FileSystemLoader, Template
from markupsafe import escape
from requests.utils import requote_uri as requote_url

from flaresmith.core.config import ConversionOptions, NamingConvention, OutputFormat
from flaresmith.core.lists import ListContext


if TYPE_CHECKING:  # pragma: no cover - typing only
    from flaresmith.core.context import DocumentState


TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"


class BlockRole(Enum):
    PARAGRAPH = auto()
    LIST = auto()
    OTHER = auto()


@dataclass(frozen=True, slots=True)
class Block:
    """A rendered block and the role it plays inside a list item."""

    text: str
    role: BlockRole = BlockRole.OTHER


@dataclass(frozen=True, slots=True)
class TableCell:
    blocks: tuple[str, ...]
    header: bool = False
    colspan: int = 1

    @property
    def text(self) -> str:
        return " ".join(block.replace("\n", " ") for block in self.blocks)


def indent_block(text: str, width: int) -> str:
    """Indent every non-empty line of ``text`` by ``width`` spaces."""
    pad = " " * width
    return "\n".join(pad + line if line.strip() else "" for line in text.split("\n"))


def xml_attribute(value: Any) -> str:
    return str(escape(str(value)))


class MarkupFormatter:
    """Render target-syntax constructs from Jinja2 templates.

    Attribute access falls back to templates: ``formatter.admonition(...)``
    renders ``templates/<syntax>/admonition.*`` unless a ``handle_admonition``
    method exists.
    """

    format: ClassVar[OutputFormat]
    extension: ClassVar[str]
    template_subdir: ClassVar[str]

    def __init__(
        self,
        options: ConversionOptions | None = None,
        template_dir: Path = TEMPLATE_DIR,
    ) -> None:
        self.options = options or ConversionOptions(format=self.format)
        directory = template_dir / self.template_subdir
        self.env = Environment(
            loader=FileSystemLoader(directory),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
            autoescape=False,
        )
        self.env.filters.setdefault("xml_attribute", xml_attribute)
        self.env.filters.setdefault("indent_block", indent_block)

        # "admonition.adoc.j2" is reachable as formatter.admonition(...).
        self._sources = {path.name.split(".", 1)[0]: path.name for path in directory.glob("*.j2")}
        self._compiled: dict[str, Template] = {}

    @property
    def template_names(self) -> set[str]:
        return set(self._sources)

    def _get_template(self, key: str) -> Template:
        if key not in self._compiled:
            if key not in self._sources:
                raise KeyError(key)
            self._compiled[key] = self.env.get_template(self._sources[key])
        return self._compiled[key]

    def __getattr__(self, method: str) -> Callable[..., str]:
        if method.startswith("_"):
            raise AttributeError(method)
        handler = getattr(type(self), f"handle_{method}", None)
        if handler is not None:
            return handler.__get__(self, type(self))
        if method not in self._sources:
            raise AttributeError(f"{type(self).__name__} has no template for '{method}'")
        template = self._get_template(method)

        def render(text: str | None = None, /, **context: Any) -> str:
            if text is not None:
                context["text"] = text
            return template.render(**context).strip("\n")

        return render

    def __getitem__(self, key: str) -> Callable[..., str]:
        return self._get_template(key).render

    # Text and inline constructs

    def escape_text(self, text: str) -> str:
        return text

    def strong(self, text: str) -> str:
        raise NotImplementedError

    def emphasis(self, text: str) -> str:
        raise NotImplementedError

    def code(self, text: str) -> str:
        raise NotImplementedError

    def line_break(self) -> str:
        raise NotImplementedError

    def link(self, href: str, text: str, *, kind: str) -> str:
        raise NotImplementedError

    def inline_image(self, src: str, alt: str, *, width: int | None, height: int | None) -> str:
        raise NotImplementedError

    def url(self, value: str) -> str:
        return requote_url(value)

    def document_target(self, path: str) -> str:
        """Rewrite a link to a sibling authored document."""
        return path

    # Variables and includes

    def variable_name(self, name: str, convention: NamingConvention) -> str:
        return name

    def variable_reference(self, name: str) -> str:
        raise NotImplementedError

    def include_directive(self, target: str, *, element_id: str) -> str:
        raise NotImplementedError

    def variables_filename(self) -> str:
        raise NotImplementedError

    def render_variables_file(
        self, definitions: Mapping[str, str], *, instance: str | None = None
    ) -> str:
        entries = sorted(definitions.items())
        return self.variables_file(entries=entries, instance=instance) + "\n"

    # Blocks

    def heading(self, level: int, text: str, *, anchor: str | None = None) -> str:
        raise NotImplementedError

    def list_marker(self, context: ListContext) -> str:
        raise NotImplementedError

    def list_item(self, marker: str, main: str, blocks: Iterable[Block]) -> str:
        raise NotImplementedError

    def list_block(self, items: list[str], context: ListContext, *, start: int) -> str:
        raise NotImplementedError

    def paragraph(self, text: str) -> str:
        return text

    def rule(self) -> str:
        raise NotImplementedError

    def raw_block(self, text: str) -> str:
        return text.strip("\n")

    def finalize_document(self, content: str, state: DocumentState) -> str:
        """Return the complete document payload."""
        return content.strip("\n") + "\n" if content.strip() else ""

    def compound(self, blocks: Iterable[Block]) -> str:
        """Join blocks that must stay attached to a single entry."""
        return "\n\n".join(block.text for block in blocks)

    def fallback_heading(self, level: int, text: str) -> str:
        raise NotImplementedError

    def block_image(
        self,
        src: str,
        alt: str,
        *,
        width: int | None = None,
        height: int | None = None,
        caption: str | None = None,
    ) -> str:
        raise NotImplementedError


_STRIP_ADMONITION_LABEL = re.compile(
    r"^[*_`]{0,2}(?:note|tip|warning|important|caution|danger|attention|info)\s*:[*_`]{0,2}\s*",
    re.IGNORECASE,
)


def strip_admonition_label(text: str) -> str:
    """Drop a leading ``Note:`` style label already conveyed by the admonition."""
    return _STRIP_ADMONITION_LABEL.sub("", text, count=1)


__all__ = [
    "TEMPLATE_DIR",
    "Block",
    "BlockRole",
    "MarkupFormatter",
    "TableCell",
    "indent_block",
    "strip_admonition_label",
    "xml_attribute",
]
