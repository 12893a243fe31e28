"""Per-invocation CLI state: verbosity, traceback policy and rich consoles.

Converted documents go to stdout. Everything else (progress, warnings, errors)
is printed on stderr so that ``flaresmith convert topic.htm > topic.adoc``
stays clean.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping
from contextvars import ContextVar
from dataclasses import dataclass, field
import sys
from typing import TYPE_CHECKING, Any, TextIO

import click


if TYPE_CHECKING:
    from rich.console import Console

__all__ = [
    "CLIState",
    "debug_enabled",
    "emit_error",
    "emit_warning",
    "get_cli_state",
    "render_message",
    "set_cli_state",
]

_LEVEL_STYLES = {"warning": "yellow", "error": "red"}


def _console_for(existing: Console | None, stream: TextIO, **options: Any) -> Console:
    # Test runners swap the standard streams between invocations.
    if existing is not None and existing.file is stream:
        return existing
    from rich.console import Console

    return Console(file=stream, **options)


@dataclass(slots=True)
class CLIState:
    """Options shared by every command of one invocation."""

    verbosity: int = 0
    show_tracebacks: bool = False
    events: defaultdict[str, list[dict[str, Any]]] = field(
        default_factory=lambda: defaultdict(list), init=False
    )
    _stdout: Console | None = field(default=None, init=False, repr=False)
    _stderr: Console | None = field(default=None, init=False, repr=False)

    @property
    def console(self) -> Console:
        self._stdout = _console_for(self._stdout, sys.stdout)
        return self._stdout

    @property
    def err_console(self) -> Console:
        self._stderr = _console_for(self._stderr, sys.stderr, highlight=False)
        return self._stderr

    def record_event(self, name: str, payload: Mapping[str, Any] | None = None) -> None:
        self.events[name].append(dict(payload or {}))

    def consume_events(self, name: str) -> list[dict[str, Any]]:
        """Return the events recorded under ``name`` and forget them."""
        return self.events.pop(name, [])


_fallback_state: ContextVar[CLIState | None] = ContextVar("flaresmith_cli_state", default=None)


def get_cli_state(ctx: click.Context | None = None, *, create: bool = True) -> CLIState:
    """Return the state bound to the active click context.

    Outside of a click invocation the state lives in a context variable. With
    ``create=False`` a missing state raises ``RuntimeError``.
    """
    ctx = ctx or click.get_current_context(silent=True)
    if ctx is not None:
        state = ctx.find_object(CLIState)
        if state is None and create:
            state = ctx.ensure_object(CLIState)
        if state is not None:
            _fallback_state.set(state)
            return state

    state = _fallback_state.get()
    if state is None:
        if not create:
            raise RuntimeError("CLI state is not initialised for this context.")
        state = CLIState()
        _fallback_state.set(state)
    return state


def set_cli_state(
    *,
    ctx: click.Context | None = None,
    verbosity: int | None = None,
    debug: bool | None = None,
) -> CLIState:
    state = get_cli_state(ctx)
    if verbosity is not None:
        state.verbosity = max(0, verbosity)
    if debug is not None:
        state.show_tracebacks = debug
    return state


def _causes(exc: BaseException) -> list[str]:
    seen: set[int] = set()
    lines: list[str] = []
    cause = exc.__cause__ or exc.__context__
    while cause is not None and id(cause) not in seen:
        seen.add(id(cause))
        lines.append(f"  {type(cause).__name__}: {cause}")
        cause = cause.__cause__ or cause.__context__
    return lines


def _details(state: CLIState, message: str, exception: BaseException | None) -> list[str]:
    if exception is None or state.verbosity < 1:
        return []
    lines = []
    detail = str(exception).strip()
    if detail and detail not in message:
        lines.append(detail)
    lines.append(f"type: {type(exception).__name__}")
    if state.verbosity >= 2:
        causes = _causes(exception)
        if causes:
            lines.append("caused by:")
            lines.extend(causes)
    return lines


def render_message(level: str, message: str, *, exception: BaseException | None = None) -> None:
    """Print a diagnostic on stderr; ``info`` messages need ``-v``."""
    state = get_cli_state()
    if level == "info":
        if state.verbosity >= 1:
            state.err_console.log(message)
        return

    from rich.text import Text

    style = _LEVEL_STYLES.get(level, "yellow")
    text = Text.assemble((f"{level}: ", f"bold {style}"), (message, style))
    details = _details(state, message, exception)
    if details:
        text.append("\n" + "\n".join(details), style=style)
    state.err_console.print(text)


def emit_warning(message: str, *, exception: BaseException | None = None) -> None:
    render_message("warning", message, exception=exception)


def emit_error(message: str, *, exception: BaseException | None = None) -> None:
    render_message("error", message, exception=exception)


def debug_enabled() -> bool:
    """Return whether ``--debug`` asked for full tracebacks."""
    try:
        return get_cli_state(create=False).show_tracebacks
    except RuntimeError:
        return False
