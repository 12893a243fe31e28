"""Primary public API for FlareSmith."""

from __future__ import annotations

from flaresmith.adapters.markup import (
    AsciiDocFormatter,
    MarkupFormatter,
    MarkupRenderer,
    WritersideFormatter,
    formatter_for,
)
from flaresmith.api import (
    BatchError,
    BatchResult,
    ConversionMetadata,
    ConversionResult,
    ConversionService,
    convert_batch,
    discover_inputs,
)
from flaresmith.core.conditions import ConditionMatcher, collect_conditions
from flaresmith.core.config import (
    ConditionPolicy,
    ConversionOptions,
    NamingConvention,
    OutputFormat,
    SnippetMode,
    VariableMode,
    build_options,
    load_options,
)
from flaresmith.core.context import DocumentState, RenderContext
from flaresmith.core.exceptions import (
    ConversionError,
    FlareSmithError,
    InvalidOptionsError,
    UnsupportedFormatError,
    VariableSourceError,
)
from flaresmith.core.glossary import GlossaryEntry, load_glossary, render_glossary
from flaresmith.core.rules import RenderPhase, renders
from flaresmith.core.variables import VariableDefinition, VariableSet, load_variable_set
from flaresmith.version import get_version


__version__ = get_version()

__all__ = [
    "AsciiDocFormatter",
    "BatchError",
    "BatchResult",
    "ConditionMatcher",
    "ConditionPolicy",
    "ConversionError",
    "ConversionMetadata",
    "ConversionOptions",
    "ConversionResult",
    "ConversionService",
    "DocumentState",
    "FlareSmithError",
    "GlossaryEntry",
    "InvalidOptionsError",
    "MarkupFormatter",
    "MarkupRenderer",
    "NamingConvention",
    "OutputFormat",
    "RenderContext",
    "RenderPhase",
    "SnippetMode",
    "UnsupportedFormatError",
    "VariableDefinition",
    "VariableMode",
    "VariableSet",
    "VariableSourceError",
    "WritersideFormatter",
    "__version__",
    "build_options",
    "collect_conditions",
    "convert_batch",
    "discover_inputs",
    "formatter_for",
    "load_glossary",
    "load_options",
    "load_variable_set",
    "render_glossary",
    "renders",
]
