"""Route pipeline diagnostics to the terminal."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from flaresmith.core.diagnostics import DiagnosticEmitter, format_event_message

from .state import CLIState, get_cli_state, render_message


class CliEmitter(DiagnosticEmitter):
    """Print warnings and errors on stderr and keep events on the CLI state.

    Events with a human readable form (see ``format_event_message``) are also
    shown as progress lines when ``-v`` is given.
    """

    def __init__(self, state: CLIState | None = None, *, debug_enabled: bool | None = None) -> None:
        self.state = state or get_cli_state()
        self.debug_enabled = (
            self.state.show_tracebacks if debug_enabled is None else bool(debug_enabled)
        )

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        render_message("warning", message, exception=exc)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        render_message("error", message, exception=exc)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        self.state.record_event(name, payload)
        summary = format_event_message(name, payload)
        if summary is not None:
            render_message("info", summary)


__all__ = ["CliEmitter"]
