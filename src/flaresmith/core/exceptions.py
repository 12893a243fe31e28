"""Custom exception hierarchy for the conversion pipeline."""

from __future__ import annotations


class FlareSmithError(RuntimeError):
    """Base exception for conversion failures."""


class ValidationError(FlareSmithError):
    """Raised when a conversion request cannot be honoured as configured."""


class UnsupportedFormatError(ValidationError):
    """Raised when the requested target syntax is unknown."""


class InvalidOptionsError(ValidationError):
    """Raised when conversion options fail validation."""


class ConversionError(FlareSmithError):
    """Raised when a document conversion fails and cannot recover."""

    def __init__(self, message: str, *, source: str | None = None) -> None:
        super().__init__(message)
        self.source = source


class VariableSourceError(FlareSmithError):
    """Raised when a variable definition file cannot be parsed."""


class GlossarySourceError(FlareSmithError):
    """Raised when a glossary file cannot be parsed."""


class InvalidNodeError(FlareSmithError):
    """Raised when a handler receives an unexpected DOM node shape."""


def exception_messages(exc: BaseException) -> list[str]:
    """Return the collected message chain for an exception and its causes."""
    messages: list[str] = []
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        text = str(current).strip()
        if text:
            first_line = text.splitlines()[0].strip()
            if first_line:
                messages.append(first_line)
        current = current.__cause__ or current.__context__
    return messages


def exception_hint(exc: BaseException) -> str | None:
    """Return the most specific message available for an exception chain."""
    messages = exception_messages(exc)
    return messages[-1] if messages else None


__all__ = [
    "ConversionError",
    "FlareSmithError",
    "GlossarySourceError",
    "InvalidNodeError",
    "InvalidOptionsError",
    "UnsupportedFormatError",
    "ValidationError",
    "VariableSourceError",
    "exception_hint",
    "exception_messages",
]
