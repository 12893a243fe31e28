import pytest

from flaresmith.adapters.markup import MarkupRenderer
from flaresmith.core.config import ConversionOptions, OutputFormat
from flaresmith.core.continuity import (
    ListContinuityPolicy,
    SiblingKind,
    SiblingToken,
    plan_list_continuity,
)
from flaresmith.core.lists import OrdinalStyle


@pytest.fixture
def renderer() -> MarkupRenderer:
    return MarkupRenderer(ConversionOptions(), parser="html.parser")


@pytest.fixture
def writerside() -> MarkupRenderer:
    return MarkupRenderer(ConversionOptions(format=OutputFormat.WRITERSIDE), parser="html.parser")


INTERRUPTED_PROCEDURE = """
<ol><li>One</li><li>Two</li><li>Three</li></ol>
<p>Check the gauge.</p>
<ol><li>Four</li><li>Five</li><li>Six</li></ol>
<p><img src="gauge.png" width="400"></p>
<ol><li>Seven</li><li>Eight</li></ol>
"""


def test_interrupted_lists_continue_numbering(renderer: MarkupRenderer) -> None:
    output = renderer.render(INTERRUPTED_PROCEDURE)
    assert output.startswith(". One\n. Two\n. Three")
    assert "Check the gauge." in output
    assert "[start=4]\n. Four\n. Five\n. Six" in output
    assert "image::gauge.png[width=400]" in output
    assert "[start=7]\n. Seven\n. Eight" in output


def test_interrupted_lists_number_sequentially_in_writerside(writerside: MarkupRenderer) -> None:
    output = writerside.render(INTERRUPTED_PROCEDURE)
    for ordinal, word in enumerate(
        ["One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight"], start=1
    ):
        assert f"{ordinal}. {word}" in output


def test_continuity_can_be_disabled() -> None:
    options = ConversionOptions.model_validate({"lists": {"continue_interrupted_lists": False}})
    output = MarkupRenderer(options, parser="html.parser").render(INTERRUPTED_PROCEDURE)
    assert "[start=" not in output


def test_heading_breaks_numbering_run(renderer: MarkupRenderer) -> None:
    html = """
    <ol><li>One</li><li>Two</li></ol>
    <h2>Next part</h2>
    <ol><li>Again</li></ol>
    """
    output = renderer.render(html)
    assert "[start=" not in output
    assert "== Next part" in output


def test_continue_marker_crosses_heading(renderer: MarkupRenderer) -> None:
    html = """
    <ol><li>One</li><li>Two</li></ol>
    <h2>Next part</h2>
    <ol data-continue="true"><li>Three</li></ol>
    """
    output = renderer.render(html)
    assert "[start=3]\n. Three" in output


def test_explicit_start_is_kept(renderer: MarkupRenderer) -> None:
    output = renderer.render('<ol start="5"><li>Five</li><li>Six</li></ol>')
    assert output == "[start=5]\n. Five\n. Six\n"


def test_nested_depth_style_needs_no_declaration(renderer: MarkupRenderer) -> None:
    html = """
    <ol>
      <li>Prepare
        <ol><li>Unpack</li><li>Inspect</li></ol>
      </li>
      <li>Install</li>
    </ol>
    """
    output = renderer.render(html)
    assert ". Prepare\n.. Unpack\n.. Inspect\n. Install" in output
    assert "[loweralpha]" not in output


def test_nested_explicit_alpha_is_not_declared(renderer: MarkupRenderer) -> None:
    html = """
    <ol>
      <li>Prepare
        <ol style="list-style-type: lower-alpha"><li>Unpack</li></ol>
      </li>
    </ol>
    """
    output = renderer.render(html)
    assert ".. Unpack" in output
    assert "[loweralpha]" not in output


def test_top_level_alpha_list_declares_style(renderer: MarkupRenderer) -> None:
    output = renderer.render('<ol type="a"><li>Alpha</li><li>Beta</li></ol>')
    assert output == "[loweralpha]\n. Alpha\n. Beta\n"


def test_top_level_alpha_list_in_writerside(writerside: MarkupRenderer) -> None:
    output = writerside.render('<ol type="a"><li>Alpha</li><li>Beta</li></ol>')
    assert output == '1. Alpha\n2. Beta\n{type="alpha-lower"}\n'


def test_list_item_continuation_blocks(renderer: MarkupRenderer) -> None:
    html = """
    <ol>
      <li><p>Open the panel.</p><p>The panel slides out.</p></li>
      <li>Close it.</li>
    </ol>
    """
    output = renderer.render(html)
    assert ". Open the panel.\n+\nThe panel slides out.\n. Close it." in output


def test_writerside_nested_list_is_indented(writerside: MarkupRenderer) -> None:
    html = "<ul><li>Parent<ul><li>Child</li></ul></li></ul>"
    output = writerside.render(html)
    assert output == "- Parent\n  - Child\n"


def test_unordered_lists_use_bullets(renderer: MarkupRenderer) -> None:
    output = renderer.render("<ul><li>Red</li><li>Green</li></ul>")
    assert output == "* Red\n* Green\n"


def test_plan_continues_across_interruptions() -> None:
    tokens = [
        SiblingToken(kind=SiblingKind.ORDERED_LIST, item_count=3),
        SiblingToken(kind=SiblingKind.INTERRUPTION),
        SiblingToken(kind=SiblingKind.ORDERED_LIST, item_count=2),
    ]
    plan = plan_list_continuity(tokens)
    assert plan[0] is not None and plan[0].start == 1
    assert plan[1] is None
    assert plan[2] is not None and plan[2].start == 4 and plan[2].continued


def test_plan_restarts_after_style_change() -> None:
    tokens = [
        SiblingToken(kind=SiblingKind.ORDERED_LIST, item_count=3),
        SiblingToken(kind=SiblingKind.INTERRUPTION),
        SiblingToken(
            kind=SiblingKind.ORDERED_LIST, item_count=2, style=OrdinalStyle.LOWER_ROMAN
        ),
    ]
    plan = plan_list_continuity(tokens)
    assert plan[2] is not None and plan[2].start == 1


def test_plan_restarts_after_unordered_list() -> None:
    tokens = [
        SiblingToken(kind=SiblingKind.ORDERED_LIST, item_count=2),
        SiblingToken(kind=SiblingKind.UNORDERED_LIST),
        SiblingToken(kind=SiblingKind.ORDERED_LIST, item_count=2),
    ]
    plan = plan_list_continuity(tokens)
    assert plan[2] is not None and plan[2].start == 1


def test_plan_honours_disabled_policy() -> None:
    tokens = [
        SiblingToken(kind=SiblingKind.ORDERED_LIST, item_count=3),
        SiblingToken(kind=SiblingKind.INTERRUPTION),
        SiblingToken(kind=SiblingKind.ORDERED_LIST, item_count=2),
    ]
    policy = ListContinuityPolicy(continue_interrupted_lists=False)
    plan = plan_list_continuity(tokens, policy)
    assert plan[2] is not None and plan[2].start == 1


def test_content_after_nested_list_stays_with_parent_item(renderer: MarkupRenderer) -> None:
    html = "<ol><li>Main<ol><li>Sub</li></ol><p>After nested</p></li><li>Next</li></ol>"
    output = renderer.render(html)
    assert output == ". Main\n.. Sub\n\n+\nAfter nested\n. Next\n"


def test_content_after_deep_nesting_climbs_back_to_parent(renderer: MarkupRenderer) -> None:
    html = (
        "<ul><li>Main<ul><li>Sub<ul><li>Deep</li></ul></li></ul>"
        "<p>Back to main</p></li></ul>"
    )
    output = renderer.render(html)
    assert output == "* Main\n** Sub\n*** Deep\n\n\n+\nBack to main\n"


def test_content_attached_to_nested_item_needs_no_climb(renderer: MarkupRenderer) -> None:
    html = "<ol><li>Main<ol><li><p>Sub</p><p>Sub detail</p></li></ol><p>Main detail</p></li></ol>"
    output = renderer.render(html)
    assert output == ". Main\n.. Sub\n+\nSub detail\n\n+\nMain detail\n"
