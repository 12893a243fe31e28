"""Facade aggregating the embeddable FlareSmith entry points.

Architecture
: `ConversionService` converts single documents from strings or files and
  writes results, including the variables sidecar, next to their output.
: `convert_batch` drives many conversions concurrently on an asyncio loop with
  a bounded number of worker threads and isolates per-document failures in
  `BatchResult.errors`.

Usage Example
:
    >>> from flaresmith.api import ConversionService
    >>> service = ConversionService({"format": "asciidoc"})
    >>> service.convert_string("<h1>Intro</h1><p>Hello <b>world</b></p>").content
    '= Intro\\n\\nHello *world*\\n'
"""

from __future__ import annotations

from .batch import (
    DEFAULT_CONCURRENCY,
    BatchError,
    BatchResult,
    convert_batch,
    discover_inputs,
    output_path_for,
)
from .service import (
    ConversionMetadata,
    ConversionResult,
    ConversionService,
    coerce_options,
    count_words,
)


__all__ = [
    "DEFAULT_CONCURRENCY",
    "BatchError",
    "BatchResult",
    "ConversionMetadata",
    "ConversionResult",
    "ConversionService",
    "coerce_options",
    "convert_batch",
    "count_words",
    "discover_inputs",
    "output_path_for",
]
