"""Typer application wiring for the FlareSmith CLI."""

from __future__ import annotations

from typing import Annotated

import typer

from flaresmith.version import get_version

from .commands import batch, conditions, convert, glossary
from .state import debug_enabled, emit_error, get_cli_state, set_cli_state


app = typer.Typer(
    help="Convert MadCap Flare HTML into AsciiDoc or Writerside Markdown.",
    context_settings={"help_option_names": ["--help"]},
    no_args_is_help=True,
)


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"flaresmith {get_version()}")
        raise typer.Exit()


@app.callback()
def _configure(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            count=True,
            help="Report progress on stderr; repeat for error details.",
        ),
    ] = 0,
    debug: Annotated[
        bool,
        typer.Option(
            "--debug/--no-debug",
            help="Print full tracebacks for unexpected failures.",
        ),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_print_version,
            is_eager=True,
            help="Show the installed version and exit.",
        ),
    ] = False,
) -> None:
    """Apply the global options before a subcommand runs."""
    set_cli_state(ctx=ctx, verbosity=verbose, debug=debug)


app.command(name="convert")(convert)
app.command(name="batch")(batch)
app.command(name="conditions")(conditions)
app.command(name="glossary")(glossary)


def _report_crash(exc: Exception) -> None:
    state = get_cli_state()
    if not state.show_tracebacks:
        emit_error(str(exc), exception=exc)
        return
    from rich.traceback import Traceback

    trace = Traceback.from_exception(
        type(exc), exc, exc.__traceback__, show_locals=state.verbosity >= 2
    )
    state.err_console.print(trace)


def main() -> None:
    """Console script entry point."""
    try:
        app()
    except typer.Exit:
        raise
    except KeyboardInterrupt as exc:
        if debug_enabled():
            raise
        emit_error("Interrupted.", exception=exc)
        raise SystemExit(130) from exc
    except Exception as exc:
        _report_crash(exc)
        raise SystemExit(1) from exc


__all__ = ["app", "main"]
