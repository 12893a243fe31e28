import logging
from pathlib import Path

import pytest

from flaresmith.api.service import ConversionService, count_words
from flaresmith.core.config import (
    NamingConvention,
    OutputFormat,
    SnippetMode,
    VariableMode,
    build_options,
    load_options,
    resolve_format,
)
from flaresmith.core.diagnostics import CollectingEmitter, LoggingEmitter, format_event_message
from flaresmith.core.exceptions import (
    ConversionError,
    InvalidOptionsError,
    UnsupportedFormatError,
    exception_hint,
)
from flaresmith.core.parsing import expand_self_closing_tags, parse_html
from flaresmith.ui.cli.diagnostics import CliEmitter
from flaresmith.ui.cli.state import CLIState, set_cli_state


VALUES = {"General.ProductName": "Acme Cloud"}
TOPIC = '<h1>Start</h1><p>Install <MadCap:variable name="General.ProductName" />.</p>'


@pytest.mark.parametrize(
    ("alias", "expected"),
    [
        ("asciidoc", OutputFormat.ASCIIDOC),
        ("adoc", OutputFormat.ASCIIDOC),
        ("Writerside", OutputFormat.WRITERSIDE),
        ("writerside-markdown", OutputFormat.WRITERSIDE),
        ("markdown", OutputFormat.WRITERSIDE),
    ],
)
def test_format_aliases(alias: str, expected: OutputFormat) -> None:
    assert resolve_format(alias) is expected
    assert build_options({"format": alias}).format is expected


def test_unknown_format_is_rejected() -> None:
    with pytest.raises(UnsupportedFormatError):
        resolve_format("docx")
    with pytest.raises(InvalidOptionsError):
        build_options({"format": "docx"})


def test_unknown_option_keys_are_rejected() -> None:
    with pytest.raises(InvalidOptionsError):
        build_options({"variables": {"colour": "blue"}})


def test_build_options_overrides() -> None:
    options = build_options({"format": "writerside"}, parser="html.parser")
    assert options.parser == "html.parser"
    assert options.variables.mode is VariableMode.REPLACE
    assert options.snippets.mode is SnippetMode.MERGE
    assert options.lists.continue_interrupted_lists is True


def test_load_options_from_yaml(tmp_path: Path) -> None:
    path = tmp_path / "flaresmith.yml"
    path.write_text(
        "format: writerside\n"
        "variables:\n"
        "  mode: reference\n"
        "  naming_convention: snake_case\n"
        "conditions:\n"
        "  exclude: [beta]\n",
        encoding="utf-8",
    )
    options = load_options(path)

    assert options.format is OutputFormat.WRITERSIDE
    assert options.variables.mode is VariableMode.REFERENCE
    assert options.variables.naming_convention is NamingConvention.SNAKE_CASE
    assert options.conditions.exclude == ["beta"]


def test_load_options_rejects_non_mapping(tmp_path: Path) -> None:
    path = tmp_path / "broken.yml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(InvalidOptionsError):
        load_options(path)


def test_convert_string_metadata() -> None:
    emitter = CollectingEmitter()
    service = ConversionService({"parser": "html.parser"}, emitter=emitter)

    result = service.convert_string(TOPIC, variables=VALUES)

    assert result.content == "= Start\n\nInstall Acme Cloud.\n"
    assert result.metadata.title == "Start"
    assert result.metadata.format is OutputFormat.ASCIIDOC
    assert result.variables_file is None
    assert ("document_converted", {"source": None, "format": "asciidoc"}) in emitter.events
    assert result.metadata.to_dict()["word_count"] == count_words(result.content)


def test_write_result_emits_sidecar(tmp_path: Path) -> None:
    service = ConversionService({"parser": "html.parser", "variables": {"mode": "reference"}})
    result = service.convert_string(TOPIC, variables=VALUES)

    written = service.write_result(result, tmp_path / "out" / "start.adoc")

    assert written == [tmp_path / "out" / "start.adoc", tmp_path / "out" / "variables.adoc"]
    assert (tmp_path / "out" / "variables.adoc").read_text(encoding="utf-8") == (
        "// Generated from MadCap FLVAR files\n:product-name: Acme Cloud\n"
    )

    only_content = service.write_result(result, tmp_path / "bare" / "start.adoc", sidecar=False)
    assert only_content == [tmp_path / "bare" / "start.adoc"]


def test_missing_file_raises_conversion_error(tmp_path: Path) -> None:
    service = ConversionService({"parser": "html.parser"})
    missing = tmp_path / "missing.htm"
    with pytest.raises(ConversionError) as excinfo:
        service.convert_file(missing)
    assert excinfo.value.source == str(missing)


def test_latin1_documents_are_read(tmp_path: Path) -> None:
    path = tmp_path / "legacy.htm"
    path.write_bytes("<p>Caf\xe9</p>".encode("latin-1"))
    result = ConversionService({"parser": "html.parser"}).convert_file(path)
    assert result.content == "Café\n"


def test_parser_fallback_is_reported() -> None:
    emitter = CollectingEmitter()
    soup = parse_html("<p>x</p>", "no-such-parser", emitter=emitter)
    assert soup.p.get_text() == "x"
    assert emitter.events == [
        ("parser_fallback", {"preferred": "no-such-parser", "fallback": "html.parser"})
    ]


def test_self_closing_madcap_tags_are_expanded() -> None:
    html = '<MadCap:variable name="A.B" /><p>after</p>'
    assert expand_self_closing_tags(html) == (
        '<MadCap:variable name="A.B"></MadCap:variable><p>after</p>'
    )


@pytest.mark.parametrize(
    ("name", "payload", "expected"),
    [
        (
            "variables_loaded",
            {"count": 3, "sources": ["a", "b"]},
            "Loaded 3 variable(s) from 2 file(s)",
        ),
        (
            "snippet_resolved",
            {"source": "Note.flsnp", "cached": True},
            "Snippet Note.flsnp resolved in merge mode (cached)",
        ),
        (
            "conditions_filtered",
            {"dropped": 2, "tags": {"B": 1, "A": 1}},
            "Removed 2 conditional element(s) (A=1, B=1)",
        ),
        ("document_converted", {"format": "asciidoc"}, "Converted <string> to asciidoc"),
        ("batch_progress", {"done": 1, "total": 4, "source": "a.htm"}, "[1/4] a.htm"),
    ],
)
def test_format_event_message(name: str, payload: dict, expected: str) -> None:
    assert format_event_message(name, payload) == expected


def test_unknown_event_has_no_message() -> None:
    assert format_event_message("something_else", {}) is None


def test_logging_emitter(caplog: pytest.LogCaptureFixture) -> None:
    emitter = LoggingEmitter(logger_obj=logging.getLogger("flaresmith.tests"))
    with caplog.at_level(logging.INFO, logger="flaresmith.tests"):
        emitter.event("document_converted", {"source": "a.htm", "format": "asciidoc"})
        emitter.warning("careful")
    assert "Converted a.htm to asciidoc" in caplog.text
    assert "careful" in caplog.text


def test_cli_emitter_records_events() -> None:
    set_cli_state(verbosity=0, debug=False)
    state = CLIState()
    emitter = CliEmitter(state)
    emitter.event("batch_progress", {"done": 1, "total": 1, "source": "a.htm"})

    assert state.consume_events("batch_progress") == [{"done": 1, "total": 1, "source": "a.htm"}]
    assert state.consume_events("batch_progress") == []
    assert emitter.debug_enabled is False


def test_exception_hint_uses_deepest_cause() -> None:
    try:
        try:
            raise ValueError("root cause")
        except ValueError as exc:
            raise ConversionError("outer") from exc
    except ConversionError as error:
        assert exception_hint(error) == "root cause"
