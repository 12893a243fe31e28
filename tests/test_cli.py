from pathlib import Path

import pytest
from typer.testing import CliRunner

from flaresmith.ui.cli import app


runner = CliRunner()

TOPIC = (
    "<html><body><h1>Install</h1>"
    '<p>Get <MadCap:variable name="Brand.ProductName" /> today.</p>'
    '<p madcap:conditions="Default.Internal">Staff only.</p>'
    '<p madcap:conditions="Default.Online">Online help.</p>'
    "</body></html>"
)

FLVAR = """<?xml version="1.0" encoding="utf-8"?>
<CatapultVariableSet>
  <Variable Name="ProductName" EvaluatedDefinition="Acme Cloud">Acme Cloud</Variable>
</CatapultVariableSet>
"""

FLGLO = """<?xml version="1.0" encoding="utf-8"?>
<CatapultGlossary>
  <GlossaryEntry><Terms><Term>API</Term></Terms><Definition>Interface.</Definition></GlossaryEntry>
</CatapultGlossary>
"""


@pytest.fixture
def topic(tmp_path: Path) -> Path:
    path = tmp_path / "install.htm"
    path.write_text(TOPIC, encoding="utf-8")
    return path


@pytest.fixture
def flvar(tmp_path: Path) -> Path:
    path = tmp_path / "Brand.flvar"
    path.write_text(FLVAR, encoding="utf-8")
    return path


def test_convert_to_stdout(topic: Path, flvar: Path) -> None:
    result = runner.invoke(
        app, ["convert", str(topic), "--variable-file", str(flvar), "--parser", "html.parser"]
    )

    assert result.exit_code == 0, result.output
    assert result.stdout == "= Install\n\nGet Acme Cloud today.\n\nOnline help.\n"


def test_convert_writerside_to_output_file(topic: Path, flvar: Path, tmp_path: Path) -> None:
    target = tmp_path / "out" / "install.md"
    result = runner.invoke(
        app,
        [
            "convert",
            str(topic),
            "-f",
            "writerside",
            "--variable-file",
            str(flvar),
            "-o",
            str(target),
            "--parser",
            "html.parser",
        ],
    )

    assert result.exit_code == 0, result.output
    assert target.read_text(encoding="utf-8") == (
        "# Install\n\nGet Acme Cloud today.\n\nOnline help.\n"
    )


def test_convert_output_directory_uses_format_extension(topic: Path, tmp_path: Path) -> None:
    out = tmp_path / "docs"
    out.mkdir()
    result = runner.invoke(app, ["convert", str(topic), "-o", str(out), "--parser", "html.parser"])

    assert result.exit_code == 0, result.output
    assert (out / "install.adoc").exists()


def test_reference_mode_writes_variables_sidecar(topic: Path, flvar: Path, tmp_path: Path) -> None:
    target = tmp_path / "out" / "install.adoc"
    result = runner.invoke(
        app,
        [
            "convert",
            str(topic),
            "--variables",
            "reference",
            "--variable-file",
            str(flvar),
            "-o",
            str(target),
            "--parser",
            "html.parser",
        ],
    )

    assert result.exit_code == 0, result.output
    assert target.read_text(encoding="utf-8").startswith(
        "= Install\ninclude::variables.adoc[]\n\nGet {product-name} today."
    )
    sidecar = target.parent / "variables.adoc"
    assert sidecar.read_text(encoding="utf-8") == (
        "// Generated from MadCap FLVAR files\n:product-name: Acme Cloud\n"
    )


def test_exclude_condition_option(topic: Path) -> None:
    result = runner.invoke(
        app, ["convert", str(topic), "-x", "online", "--parser", "html.parser"]
    )

    assert result.exit_code == 0, result.output
    assert "Online help." not in result.stdout
    assert "Staff only." not in result.stdout


def test_invalid_format_is_a_usage_error(topic: Path) -> None:
    result = runner.invoke(app, ["convert", str(topic), "-f", "docx"])
    assert result.exit_code == 2


def test_conditions_command_lists_tags(topic: Path) -> None:
    result = runner.invoke(app, ["conditions", str(topic)])

    assert result.exit_code == 0, result.output
    assert "Condition tags" in result.stdout
    assert "Default.Internal" in result.stdout
    assert "Default.Online" in result.stdout
    assert "drop" in result.stdout
    assert "keep" in result.stdout


def test_conditions_command_without_tags(tmp_path: Path) -> None:
    plain = tmp_path / "plain.htm"
    plain.write_text("<html><body><p>Nothing here</p></body></html>", encoding="utf-8")

    result = runner.invoke(app, ["conditions", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert result.stdout == "No condition tags found.\n"


def test_glossary_command(tmp_path: Path) -> None:
    source = tmp_path / "Main.flglo"
    source.write_text(FLGLO, encoding="utf-8")

    result = runner.invoke(app, ["glossary", str(source), "--title", "Terms"])

    assert result.exit_code == 0, result.output
    assert result.stdout == "= Terms\n\n[glossary]\nAPI::\nInterface.\n"


def test_batch_command(tmp_path: Path) -> None:
    content = tmp_path / "Manual" / "Content"
    (content / "Guides").mkdir(parents=True)
    (content / "index.htm").write_text("<h1>Home</h1>", encoding="utf-8")
    (content / "Guides" / "setup.htm").write_text("<p>Run it.</p>", encoding="utf-8")
    out = tmp_path / "out"

    args = ["batch", str(content), str(out), "-f", "writerside", "-j", "2"]
    result = runner.invoke(app, [*args, "--parser", "html.parser"])

    assert result.exit_code == 0, result.output
    assert (out / "index.md").read_text(encoding="utf-8") == "# Home\n"
    assert (out / "Guides" / "setup.md").read_text(encoding="utf-8") == "Run it.\n"


def test_version_option() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0, result.output
    assert result.stdout.startswith("flaresmith ")
