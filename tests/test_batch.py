import asyncio
from pathlib import Path
import threading
import time

import pytest

from flaresmith.api.batch import convert_batch, discover_inputs, output_path_for
from flaresmith.api.service import ConversionService
from flaresmith.core.config import ConversionOptions
from flaresmith.core.diagnostics import CollectingEmitter
from flaresmith.core.exceptions import ConversionError, InvalidOptionsError


FLVAR = """<?xml version="1.0" encoding="utf-8"?>
<CatapultVariableSet>
  <Variable Name="ProductName" EvaluatedDefinition="Acme Cloud">Acme Cloud</Variable>
</CatapultVariableSet>
"""


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "Manual"
    content = root / "Content"
    (content / "Guides").mkdir(parents=True)
    (content / "Resources" / "Snippets").mkdir(parents=True)
    sets = root / "Project" / "VariableSets"
    sets.mkdir(parents=True)
    (sets / "General.flvar").write_text(FLVAR, encoding="utf-8")

    (content / "index.htm").write_text(
        '<html><body><h1>Home</h1><p>Welcome to <MadCap:variable name="General.ProductName" />.'
        "</p></body></html>",
        encoding="utf-8",
    )
    (content / "Guides" / "setup.htm").write_text(
        "<html><body><h1>Setup</h1><ol><li>Install</li></ol></body></html>", encoding="utf-8"
    )
    (content / "Guides" / "broken.htm").write_text(
        "<html><body><p>Never converted</p></body></html>", encoding="utf-8"
    )
    (content / "._index.htm").write_text("resource fork", encoding="utf-8")
    (content / "Resources" / "Snippets" / "Note.flsnp").write_text(
        "<html><body><p>Snippet</p></body></html>", encoding="utf-8"
    )
    return root


class FlakyService(ConversionService):
    def convert_file(self, path, options=None, *, variables=None):
        if Path(path).name == "broken.htm":
            raise ConversionError("Cannot parse topic", source=str(path))
        return super().convert_file(path, options, variables=variables)


class TrackingService(ConversionService):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.lock = threading.Lock()
        self.active = 0
        self.peak = 0

    def convert_file(self, path, options=None, *, variables=None):
        with self.lock:
            self.active += 1
            self.peak = max(self.peak, self.active)
        try:
            time.sleep(0.02)
            return super().convert_file(path, options, variables=variables)
        finally:
            with self.lock:
                self.active -= 1


def _options(**payload: object) -> ConversionOptions:
    return ConversionOptions.model_validate({"parser": "html.parser", **payload})


def test_discover_inputs_skips_snippets_and_resource_forks(project: Path) -> None:
    content = project / "Content"
    names = [path.relative_to(content).as_posix() for path in discover_inputs(content)]
    assert names == ["Guides/broken.htm", "Guides/setup.htm", "index.htm"]

    with_snippets = discover_inputs(content, include_snippets=True)
    assert content / "Resources" / "Snippets" / "Note.flsnp" in with_snippets


def test_output_path_mirrors_tree(tmp_path: Path) -> None:
    source = tmp_path / "in" / "Guides" / "setup.htm"
    target = output_path_for(source, tmp_path / "in", tmp_path / "out", ".md")
    assert target == tmp_path / "out" / "Guides" / "setup.md"

    outside = output_path_for(
        Path("/elsewhere/page.htm"), tmp_path / "in", tmp_path / "out", ".adoc"
    )
    assert outside == tmp_path / "out" / "page.adoc"


def test_failures_are_isolated(project: Path, tmp_path: Path) -> None:
    emitter = CollectingEmitter()
    options = _options()
    service = FlakyService(options, emitter=emitter)
    out = tmp_path / "out"

    result = asyncio.run(convert_batch(project / "Content", out, options, service=service))

    assert result.converted == 2
    assert result.failed == 1
    assert not result.ok
    assert result.errors[0].path.name == "broken.htm"
    assert result.errors[0].message == "Cannot parse topic"
    assert result.outputs == sorted([out / "Guides" / "setup.adoc", out / "index.adoc"])
    assert (out / "index.adoc").read_text(encoding="utf-8") == "= Home\n\nWelcome to Acme Cloud.\n"
    assert not (out / "Guides" / "broken.adoc").exists()
    assert emitter.errors == [
        f"Failed to convert {project / 'Content' / 'Guides' / 'broken.htm'}: Cannot parse topic"
    ]
    progress = [payload for name, payload in emitter.events if name == "batch_progress"]
    assert [payload["done"] for payload in progress] == [1, 2, 3]
    assert {payload["total"] for payload in progress} == {3}


def test_writerside_outputs_use_markdown_extension(project: Path, tmp_path: Path) -> None:
    out = tmp_path / "docs"
    service = ConversionService(_options(format="writerside"))
    result = service.convert_batch(project / "Content" / "Guides" / "setup.htm", out)

    assert result.converted == 1
    assert result.outputs == [out / "setup.md"]
    assert (out / "setup.md").read_text(encoding="utf-8") == "# Setup\n\n1. Install\n"


def test_reference_mode_writes_one_sidecar(project: Path, tmp_path: Path) -> None:
    out = tmp_path / "out"
    options = _options(variables={"mode": "reference"})

    service = FlakyService(options)
    result = asyncio.run(convert_batch(project / "Content", out, options, service=service))

    assert result.variables_file == out / "variables.adoc"
    assert result.variables_file.read_text(encoding="utf-8") == (
        "// Generated from MadCap FLVAR files\n:product-name: Acme Cloud\n"
    )
    assert not (out / "Guides" / "variables.adoc").exists()
    assert (out / "index.adoc").read_text(encoding="utf-8").startswith(
        "= Home\ninclude::variables.adoc[]\n"
    )


def test_explicit_file_list_counts_unsupported_inputs(project: Path, tmp_path: Path) -> None:
    content = project / "Content"
    inputs = [content / "index.htm", content / "Resources" / "Snippets" / "Note.flsnp"]

    result = asyncio.run(convert_batch(inputs, tmp_path / "out", _options()))

    assert result.converted == 1
    assert result.skipped == 1
    assert result.total == 2


def test_concurrency_is_bounded(project: Path, tmp_path: Path) -> None:
    options = _options()
    service = TrackingService(options)

    result = asyncio.run(
        convert_batch(
            project / "Content", tmp_path / "out", options, concurrency=2, service=service
        )
    )

    assert result.converted == 3
    assert 1 <= service.peak <= 2


def test_invalid_concurrency_is_rejected(project: Path, tmp_path: Path) -> None:
    with pytest.raises(InvalidOptionsError):
        asyncio.run(convert_batch(project / "Content", tmp_path / "out", concurrency=0))
