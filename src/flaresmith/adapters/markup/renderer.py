"""High-level Flare HTML to markup renderer based on the rule pipeline."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from flaresmith.core.config import ConversionOptions, OutputFormat, resolve_format
from flaresmith.core.context import DocumentState, RenderContext
from flaresmith.core.diagnostics import DiagnosticEmitter, NullEmitter
from flaresmith.core.exceptions import ConversionError, FlareSmithError
from flaresmith.core.parsing import parse_html
from flaresmith.core.rules import RenderEngine, RenderPhase, rule_spec_of

from .asciidoc import AsciiDocFormatter
from .converter import BlockConverter
from .formatter import MarkupFormatter
from .writerside import WritersideFormatter


FORMATTERS: dict[OutputFormat, type[MarkupFormatter]] = {
    OutputFormat.ASCIIDOC: AsciiDocFormatter,
    OutputFormat.WRITERSIDE: WritersideFormatter,
}


def formatter_for(options: ConversionOptions) -> MarkupFormatter:
    """Instantiate the formatter matching ``options.format``."""
    target = resolve_format(options.format)
    return FORMATTERS[target](options)


class MarkupRenderer:
    """Convert Flare HTML documents to the configured markup."""

    def __init__(
        self,
        options: ConversionOptions | None = None,
        formatter: MarkupFormatter | None = None,
        parser: str | None = None,
    ) -> None:
        self.options = options or ConversionOptions()
        self.formatter = formatter or formatter_for(self.options)
        self.parser_backend = parser or self.options.parser

        self.engine = RenderEngine()
        self._register_builtin_handlers()

    def _register_builtin_handlers(self) -> None:
        """Register the built-in rewriting passes."""
        from ..handlers import (
            filtering as filtering_handlers,
            madcap as madcap_handlers,
            resolution as resolution_handlers,
            structure as structure_handlers,
        )

        self.engine.collect_from(filtering_handlers)
        self.engine.collect_from(resolution_handlers)
        self.engine.collect_from(madcap_handlers)
        self.engine.collect_from(structure_handlers)

    def register(self, handler: Any) -> None:
        """Register additional handlers on demand.

        Arguments can be callables decorated with :func:`renders` or modules/classes
        exposing decorated attributes.
        """
        if rule_spec_of(handler) is not None:
            self.engine.register(handler)
            return

        self.engine.collect_from(handler)

    def render(
        self,
        html: str,
        *,
        runtime: Mapping[str, Any] | None = None,
        state: DocumentState | None = None,
        emitter: DiagnosticEmitter | None = None,
    ) -> str:
        """Render an HTML document into the target markup."""
        active_emitter = emitter or NullEmitter()
        soup = parse_html(html, self.parser_backend, emitter=active_emitter)
        document_state = state or DocumentState()

        title_tag = soup.find("title")
        fallback_title = " ".join(title_tag.get_text().split()) if title_tag else ""

        context = RenderContext(
            options=self.options,
            formatter=self.formatter,
            document=soup,
            state=document_state,
        )
        context.attach_runtime(emitter=active_emitter)
        if runtime:
            context.attach_runtime(**runtime)

        source = context.source_path
        try:
            self.engine.run(soup, context)
            root = soup.body or soup
            content = BlockConverter(context).convert_document(root)
        except FlareSmithError:
            raise
        except Exception as exc:
            raise ConversionError(
                "Markup rendering failed", source=str(source) if source else None
            ) from exc

        if document_state.title is None and fallback_title:
            document_state.title = fallback_title
        return self.formatter.finalize_document(content, document_state)

    def iter_registered_rules(self) -> Iterable[tuple[RenderPhase, str]]:
        """Expose currently registered rules for debugging/reporting."""
        for phase in RenderPhase:
            for rule in self.engine.registry.iter_phase(phase):
                yield phase, rule.name

    def describe_registered_rules(self) -> list[dict[str, object]]:
        """Return detailed metadata about registered rules."""
        return self.engine.registry.describe()


__all__ = ["FORMATTERS", "MarkupRenderer", "formatter_for"]
