import pytest

from flaresmith.adapters.markup import MarkupRenderer
from flaresmith.adapters.markup.inline import Segment, join_segments
from flaresmith.core.config import ConversionOptions, OutputFormat
from flaresmith.core.context import DocumentState


@pytest.fixture
def renderer() -> MarkupRenderer:
    return MarkupRenderer(ConversionOptions(), parser="html.parser")


@pytest.fixture
def writerside() -> MarkupRenderer:
    return MarkupRenderer(ConversionOptions(format=OutputFormat.WRITERSIDE), parser="html.parser")


def test_glued_bold_run_gets_spaces(renderer: MarkupRenderer) -> None:
    output = renderer.render("<p>Click<b>Save</b>now.</p>")
    assert output == "Click *Save* now.\n"


def test_glued_bold_run_in_writerside(writerside: MarkupRenderer) -> None:
    output = writerside.render("<p>Click<b>Save</b>now.</p>")
    assert output == "Click **Save** now.\n"


def test_punctuation_binds_to_run(renderer: MarkupRenderer) -> None:
    output = renderer.render("<p>Press <b>Enter</b>, then wait.</p>")
    assert output == "Press *Enter*, then wait.\n"


def test_no_double_spaces_around_runs(renderer: MarkupRenderer) -> None:
    output = renderer.render("<p>Open the <i>File</i> menu</p>")
    assert output == "Open the _File_ menu\n"
    assert "  " not in output


def test_inner_whitespace_moves_outside_run(renderer: MarkupRenderer) -> None:
    output = renderer.render("<p>The<b> bold </b>word</p>")
    assert output == "The *bold* word\n"


def test_adjacent_runs_are_separated(renderer: MarkupRenderer) -> None:
    output = renderer.render("<p><b>Bold</b><i>Italic</i></p>")
    assert output == "*Bold* _Italic_\n"


def test_whitespace_only_run_collapses(renderer: MarkupRenderer) -> None:
    output = renderer.render("<p>one<b> </b>two</p>")
    assert output == "one two\n"


def test_code_spans(renderer: MarkupRenderer, writerside: MarkupRenderer) -> None:
    assert renderer.render("<p>Run <code>make</code> first.</p>") == "Run `make` first.\n"
    assert renderer.render("<p>Use <code>a+b</code></p>") == "Use `+a+b+`\n"
    assert writerside.render("<p>Run <code>make</code> first.</p>") == "Run `make` first.\n"


def test_line_breaks(renderer: MarkupRenderer, writerside: MarkupRenderer) -> None:
    html = "<p>First line<br>Second line</p>"
    assert renderer.render(html) == "First line +\nSecond line\n"
    assert writerside.render(html) == "First line<br/>Second line\n"


def test_writerside_escapes_markdown_specials(writerside: MarkupRenderer) -> None:
    output = writerside.render("<p>Use *wildcards* and &lt;tag&gt;</p>")
    assert output == "Use \\*wildcards\\* and \\<tag>\n"


def test_non_breaking_space_is_preserved(renderer: MarkupRenderer) -> None:
    output = renderer.render("<p>10&nbsp;MB</p>")
    assert output == "10\u00a0MB\n"


def test_join_segments_splits_on_block_segments() -> None:
    segments = [
        Segment.plain("Before", "Before"),
        Segment(text="image::x.png[]", block=True),
        Segment.plain("After", "After"),
    ]
    blocks = join_segments(segments, " +\n")
    assert [block.text for block in blocks] == ["Before", "image::x.png[]", "After"]


# Links


def test_anchor_link(renderer: MarkupRenderer, writerside: MarkupRenderer) -> None:
    html = '<p><a href="#top">Back</a></p>'
    assert renderer.render(html) == "<<top,Back>>\n"
    assert writerside.render(html) == "[Back](#top)\n"


def test_document_link_is_rewritten(renderer: MarkupRenderer, writerside: MarkupRenderer) -> None:
    html = '<p>See <a href="install.htm#step-2">Install</a>.</p>'
    assert renderer.render(html) == "See xref:install.adoc#step-2[Install].\n"
    assert writerside.render(html) == "See [Install](install.md#step-2).\n"


def test_writerside_document_target_drops_content_prefix(writerside: MarkupRenderer) -> None:
    html = '<p><a href="Content/Getting Started.htm">Start</a></p>'
    assert writerside.render(html) == "[Start](Getting-Started.md)\n"


def test_external_link_is_requoted(renderer: MarkupRenderer) -> None:
    html = '<p><a href="https://example.com/a b">Example</a></p>'
    assert renderer.render(html) == "https://example.com/a%20b[Example]\n"


def test_mailto_link_uses_link_macro(renderer: MarkupRenderer) -> None:
    html = '<p><a href="mailto:help@example.com">Mail us</a></p>'
    assert renderer.render(html) == "link:mailto:help@example.com[Mail us]\n"


def test_document_link_with_space_is_percent_encoded(renderer: MarkupRenderer) -> None:
    html = '<p><a href="other topic.htm#sec">Other</a></p>'
    assert renderer.render(html) == "xref:other%20topic.adoc#sec[Other]\n"


def test_madcap_xref_becomes_cross_reference(renderer: MarkupRenderer) -> None:
    html = '<p>Read <MadCap:xref href="other.htm">Other</MadCap:xref> next.</p>'
    assert renderer.render(html) == "Read xref:other.adoc[Other] next.\n"


def test_broken_document_links_are_recorded(tmp_path) -> None:
    source = tmp_path / "topic.htm"
    (tmp_path / "present.htm").write_text("<p>ok</p>", encoding="utf-8")
    html = '<p><a href="present.htm">Here</a> <a href="missing.htm">Gone</a></p>'
    state = DocumentState()
    renderer = MarkupRenderer(ConversionOptions(), parser="html.parser")
    renderer.render(html, runtime={"source_path": source}, state=state)
    assert state.broken_links == ["missing.htm"]


# Images


def test_small_image_renders_inline(renderer: MarkupRenderer) -> None:
    html = '<p>Click <img src="icons/info.png" width="16" alt="Info"> to open.</p>'
    assert renderer.render(html) == "Click image:icons/info.png[Info,width=16] to open.\n"


def test_inline_class_forces_inline_image(writerside: MarkupRenderer) -> None:
    html = '<p>Press <img class="IconInline" src="icons/play.png" alt="Play"> now.</p>'
    assert writerside.render(html) == 'Press ![Play](icons/play.png){style="inline"} now.\n'


def test_large_image_renders_as_block(
    renderer: MarkupRenderer, writerside: MarkupRenderer
) -> None:
    html = '<p><img src="shots/dialog.png" alt="Dialog" width="640"></p>'
    assert renderer.render(html) == "image::shots/dialog.png[Dialog,width=640]\n"
    assert writerside.render(html) == '![Dialog](shots/dialog.png){width="640"}\n'


def test_image_splits_surrounding_paragraph(renderer: MarkupRenderer) -> None:
    html = '<p>Before<img src="big.png" width="500">After</p>'
    assert renderer.render(html) == "Before\n\nimage::big.png[width=500]\n\nAfter\n"


def test_image_base_path_flattens_sources() -> None:
    options = ConversionOptions.model_validate({"images": {"base_path": "images"}})
    renderer = MarkupRenderer(options, parser="html.parser")
    state = DocumentState()
    output = renderer.render('<p><img src="../Resources/Images/x.png" width="300"></p>', state=state)
    assert output == "image::images/x.png[width=300]\n"
    assert state.images[0].src == "images/x.png"
    assert state.images[0].inline is False


def test_figure_caption(renderer: MarkupRenderer) -> None:
    html = '<figure><img src="map.png" alt="Map"><figcaption>Site map</figcaption></figure>'
    assert renderer.render(html) == ".Site map\nimage::map.png[Map]\n"
