"""Warning, error and event reporting for the conversion pipeline.

The core never prints. It hands diagnostics to an emitter supplied by the
caller: the CLI prints them, library users get them through ``logging`` and
tests or batches collect them in memory.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
import logging
from typing import Any, Protocol, runtime_checkable


logger = logging.getLogger(__name__)


@runtime_checkable
class DiagnosticEmitter(Protocol):
    """Receiver for pipeline diagnostics."""

    debug_enabled: bool

    def warning(self, message: str, exc: BaseException | None = None) -> None: ...

    def error(self, message: str, exc: BaseException | None = None) -> None: ...

    def event(self, name: str, payload: Mapping[str, Any]) -> None: ...


class NullEmitter:
    """Discard everything."""

    debug_enabled: bool = False

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        pass

    def error(self, message: str, exc: BaseException | None = None) -> None:
        pass

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        pass


class LoggingEmitter:
    """Send diagnostics to a :mod:`logging` logger.

    Events with a summary are logged at INFO, the others at DEBUG with their
    raw payload.
    """

    def __init__(
        self, *, logger_obj: logging.Logger | None = None, debug_enabled: bool = False
    ) -> None:
        self.log = logger_obj or logger
        self.debug_enabled = debug_enabled

    def _emit(self, level: int, message: str, exc: BaseException | None) -> None:
        self.log.log(level, message, exc_info=exc)

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        self._emit(logging.WARNING, message, exc)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        self._emit(logging.ERROR, message, exc)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        summary = format_event_message(name, payload)
        if summary is None:
            self.log.debug("event %s %r", name, dict(payload))
        else:
            self.log.info(summary)


class CollectingEmitter:
    """Keep diagnostics in memory; used by batches and tests."""

    def __init__(self, *, debug_enabled: bool = False) -> None:
        self.debug_enabled = debug_enabled
        self.warnings: list[str] = []
        self.errors: list[str] = []
        self.events: list[tuple[str, dict[str, Any]]] = []

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        self.warnings.append(message)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        self.errors.append(message)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        self.events.append((name, dict(payload)))


def _tag_counts(tags: Mapping[str, int]) -> str:
    if not tags:
        return ""
    return " (" + ", ".join(f"{tag}={tags[tag]}" for tag in sorted(tags)) + ")"


_EVENT_SUMMARIES: dict[str, Callable[[Mapping[str, Any]], str]] = {
    "variables_loaded": lambda data: (
        f"Loaded {data.get('count', 0)} variable(s) "
        f"from {len(data.get('sources') or ())} file(s)"
    ),
    "snippet_resolved": lambda data: (
        f"Snippet {data.get('source') or '<unknown>'} resolved in "
        f"{data.get('mode') or 'merge'} mode" + (" (cached)" if data.get("cached") else "")
    ),
    "conditions_filtered": lambda data: (
        f"Removed {data.get('dropped', 0)} conditional element(s)"
        + _tag_counts(data.get("tags") or {})
    ),
    "parser_fallback": lambda data: (
        f"Parser '{data.get('preferred') or '?'}' unavailable, "
        f"falling back to '{data.get('fallback') or 'html.parser'}'"
    ),
    "document_converted": lambda data: (
        f"Converted {data.get('source') or '<string>'} to {data.get('format') or '?'}"
    ),
    "batch_progress": lambda data: (
        f"[{data.get('done', 0)}/{data.get('total', 0)}] {data.get('source', '')}".rstrip()
    ),
}


def format_event_message(name: str, payload: Mapping[str, Any]) -> str | None:
    """Return a one-line summary of a known event, ``None`` for the others."""
    summarize = _EVENT_SUMMARIES.get(name)
    return summarize(payload) if summarize is not None else None


def ensure_emitter(emitter: DiagnosticEmitter | None) -> DiagnosticEmitter:
    return NullEmitter() if emitter is None else emitter


def record_event(
    emitter: DiagnosticEmitter | None,
    event: str,
    payload: Mapping[str, Any],
) -> None:
    """Send ``event`` to ``emitter``; a missing emitter drops it."""
    ensure_emitter(emitter).event(event, payload)


__all__ = [
    "CollectingEmitter",
    "DiagnosticEmitter",
    "LoggingEmitter",
    "NullEmitter",
    "ensure_emitter",
    "format_event_message",
    "record_event",
]
