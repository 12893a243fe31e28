from pathlib import Path

from bs4 import BeautifulSoup
import pytest

from flaresmith.adapters.markup import MarkupRenderer
from flaresmith.adapters.markup.asciidoc import AsciiDocFormatter
from flaresmith.core.config import ConversionOptions, NamingConvention, OutputFormat, VariableMode
from flaresmith.core.context import DocumentState
from flaresmith.core.exceptions import VariableSourceError
from flaresmith.core.variables import (
    VariableDefinition,
    VariableResolver,
    VariableSet,
    apply_naming_convention,
    discover_variable_files,
    find_project_root,
    is_reference_eligible,
    load_variable_set,
    parse_flvar,
    parse_flvar_string,
    variable_set_from_mapping,
)


FLVAR = """<?xml version="1.0" encoding="utf-8"?>
<CatapultVariableSet>
  <Variable Name="ProductName" EvaluatedDefinition="Acme Cloud">Acme Cloud</Variable>
  <Variable Name="Version" EvaluatedDefinition="4.2">{Major}.{Minor}</Variable>
  <Variable Name="Support" Comment="Help desk">support@example.com</Variable>
</CatapultVariableSet>
"""

VALUES = {"General.ProductName": "Acme Cloud", "General.Version": "4.2"}

TOPIC = '<p>Welcome to <MadCap:variable name="General.ProductName" />.</p>'


def _renderer(**payload: object) -> MarkupRenderer:
    return MarkupRenderer(ConversionOptions.model_validate(payload), parser="html.parser")


def test_parse_flvar_prefers_evaluated_definition(tmp_path: Path) -> None:
    path = tmp_path / "General.flvar"
    path.write_text(FLVAR, encoding="utf-8")

    definitions = {item.name: item for item in parse_flvar(path)}

    assert definitions["ProductName"].value == "Acme Cloud"
    assert definitions["Version"].value == "4.2"
    assert definitions["Support"].value == "support@example.com"
    assert definitions["Support"].comment == "Help desk"
    assert definitions["ProductName"].qualified_name == "General.ProductName"
    assert definitions["ProductName"].source == path


def test_parse_flvar_rejects_malformed_xml() -> None:
    with pytest.raises(VariableSourceError):
        parse_flvar_string("<CatapultVariableSet><Variable", namespace="Broken")


def test_load_variable_set_skips_malformed_files(tmp_path: Path) -> None:
    good = tmp_path / "General.flvar"
    good.write_text(FLVAR, encoding="utf-8")
    bad = tmp_path / "Broken.flvar"
    bad.write_text("<CatapultVariableSet>", encoding="utf-8")
    errors: list[str] = []

    variables = load_variable_set([bad, good], on_error=errors.append)

    assert len(variables) == 3
    assert len(errors) == 1 and "Broken.flvar" in errors[0]


def test_lookup_by_qualified_and_bare_name() -> None:
    variables = VariableSet(
        [
            VariableDefinition(namespace="General", name="ProductName", value="Acme"),
            VariableDefinition(namespace="General", name="Edition", value="Pro"),
            VariableDefinition(namespace="Print", name="Edition", value="Print"),
        ]
    )
    assert variables.lookup("General.ProductName").value == "Acme"
    assert variables.lookup("ProductName").value == "Acme"
    assert variables.lookup("Print.Edition").value == "Print"
    assert variables.lookup("Edition") is None
    assert "General.Edition" in variables


def test_later_definition_wins() -> None:
    first = VariableDefinition(namespace="General", name="ProductName", value="Old")
    second = VariableDefinition(namespace="General", name="ProductName", value="New")
    variables = VariableSet([first, second])
    assert variables.lookup("General.ProductName").value == "New"
    assert variables.definitions_for("General.ProductName") == (first, second)
    assert len(variables) == 1


@pytest.mark.parametrize(
    ("convention", "expected"),
    [
        (NamingConvention.ORIGINAL, "HTTPServer_URL"),
        (NamingConvention.SNAKE_CASE, "http_server_url"),
        (NamingConvention.KEBAB_CASE, "http-server-url"),
        (NamingConvention.CAMEL_CASE, "httpServerUrl"),
    ],
)
def test_naming_conventions(convention: NamingConvention, expected: str) -> None:
    assert apply_naming_convention("HTTPServer_URL", convention) == expected


def test_reference_filters() -> None:
    definition = VariableDefinition(namespace="General", name="ProductName", value="Acme")
    assert is_reference_eligible(definition)
    assert is_reference_eligible(definition, include=["General.*"])
    assert not is_reference_eligible(definition, include=["Print.*"])
    assert not is_reference_eligible(definition, exclude=["Product*"])


def test_replace_mode_substitutes_values() -> None:
    output = _renderer().render(TOPIC, runtime={"variables": VALUES})
    assert output == "Welcome to Acme Cloud.\n"


def test_undefined_variable_keeps_name_and_warns() -> None:
    state = DocumentState()
    html = '<p>Edition: <MadCap:variable name="General.Missing" /></p>'
    output = _renderer().render(html, runtime={"variables": VALUES}, state=state)
    assert output == "Edition: General.Missing\n"
    assert state.warnings == ["Variable 'General.Missing' is not defined"]


def test_published_span_placeholders_are_resolved() -> None:
    html = '<p><span data-mc-variable="General.Version">x</span> released.</p>'
    output = _renderer().render(html, runtime={"variables": VALUES})
    assert output == "4.2 released.\n"


def test_asciidoc_reference_mode_collects_attributes() -> None:
    state = DocumentState()
    renderer = _renderer(variables={"mode": "reference"})
    output = renderer.render(TOPIC, runtime={"variables": VALUES}, state=state)

    assert output == "include::variables.adoc[]\n\nWelcome to {product-name}.\n"
    assert state.variables == {"product-name": "Acme Cloud"}
    sidecar = renderer.formatter.render_variables_file(state.variables)
    assert sidecar == "// Generated from MadCap FLVAR files\n:product-name: Acme Cloud\n"


def test_asciidoc_include_follows_document_title() -> None:
    html = "<h1>Setup</h1>" + TOPIC
    renderer = _renderer(variables={"mode": "reference"})
    output = renderer.render(html, runtime={"variables": VALUES})
    assert output.startswith("= Setup\ninclude::variables.adoc[]\n\nWelcome to {product-name}.")


def test_reference_mode_naming_convention() -> None:
    renderer = _renderer(variables={"mode": "reference", "naming_convention": "snake_case"})
    output = renderer.render(TOPIC, runtime={"variables": VALUES})
    assert "{product_name}" in output


def test_excluded_variables_are_replaced_in_reference_mode() -> None:
    renderer = _renderer(
        variables={"mode": "reference", "exclude_patterns": ["General.ProductName"]}
    )
    state = DocumentState()
    output = renderer.render(TOPIC, runtime={"variables": VALUES}, state=state)
    assert output == "Welcome to Acme Cloud.\n"
    assert state.variables == {}


def test_writerside_reference_mode_emits_var_elements() -> None:
    state = DocumentState()
    renderer = _renderer(format="writerside", variables={"mode": "reference"})
    output = renderer.render(TOPIC, runtime={"variables": VALUES}, state=state)

    assert output == 'Welcome to <var name="ProductName"/>.\n'
    sidecar = renderer.formatter.render_variables_file(state.variables, instance="hi")
    assert sidecar.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    assert '<var name="ProductName" value="Acme Cloud" instance="hi"/>' in sidecar
    assert renderer.formatter.variables_filename() == "v.list"


def test_flatten_is_an_alias_for_replace() -> None:
    options = ConversionOptions.model_validate({"variables": {"mode": "flatten"}})
    assert options.variables.mode.value == "replace"


def test_project_discovery(tmp_path: Path) -> None:
    project = tmp_path / "Manual"
    topic_dir = project / "Content" / "Guides"
    topic_dir.mkdir(parents=True)
    sets = project / "Project" / "VariableSets"
    sets.mkdir(parents=True)
    (sets / "General.flvar").write_text(FLVAR, encoding="utf-8")
    (sets / "._General.flvar").write_text("junk", encoding="utf-8")

    topic = topic_dir / "intro.htm"
    topic.write_text(TOPIC, encoding="utf-8")

    assert find_project_root(topic) == project
    assert discover_variable_files(project) == [sets / "General.flvar"]

    renderer = MarkupRenderer(
        ConversionOptions(format=OutputFormat.ASCIIDOC), parser="html.parser"
    )
    output = renderer.render(TOPIC, runtime={"source_path": topic, "project_root": project})
    assert output == "Welcome to Acme Cloud.\n"


SHARED_NAMES = {"General.Version": "1.0", "Other.Version": "9.9"}
SHARED_TOPIC = (
    '<p><MadCap:variable name="General.Version" /> / <MadCap:variable name="Other.Version" /></p>'
)


def test_same_name_in_two_namespaces_keeps_both_values() -> None:
    replaced = _renderer().render(SHARED_TOPIC, runtime={"variables": SHARED_NAMES})
    assert replaced == "1.0 / 9.9\n"

    state = DocumentState()
    renderer = _renderer(variables={"mode": "reference"})
    output = renderer.render(SHARED_TOPIC, runtime={"variables": SHARED_NAMES}, state=state)

    assert output.endswith("{general-version} / {other-version}\n")
    assert state.variables == {"general-version": "1.0", "other-version": "9.9"}
    sidecar = renderer.formatter.render_variables_file(state.variables)
    assert ":general-version: 1.0\n" in sidecar
    assert ":other-version: 9.9\n" in sidecar
    assert len(state.warnings) == 2
    assert all("several namespaces" in warning for warning in state.warnings)


def test_unshared_name_keeps_short_token() -> None:
    variables = VariableSet(
        [
            VariableDefinition(namespace="General", name="Version", value="1.0"),
            VariableDefinition(namespace="Other", name="Edition", value="Pro"),
        ]
    )
    assert not variables.is_shared_name("Version")
    renderer = _renderer(variables={"mode": "reference"})
    output = renderer.render(
        '<p><MadCap:variable name="General.Version" /></p>', runtime={"variables": variables}
    )
    assert output.endswith("{version}\n")


def test_reference_resolver_requires_formatter() -> None:
    with pytest.raises(ValueError, match="formatter"):
        VariableResolver(VariableSet(), mode=VariableMode.REFERENCE)


def test_resolver_returns_reference_definitions() -> None:
    resolver = VariableResolver(
        variable_set_from_mapping(SHARED_NAMES),
        mode=VariableMode.REFERENCE,
        formatter=AsciiDocFormatter(),
    )
    soup = BeautifulSoup(SHARED_TOPIC, "html.parser")
    warnings: list[str] = []
    extracted = resolver.resolve(soup, warn=warnings.append)

    assert extracted == {"general-version": "1.0", "other-version": "9.9"}
    assert len(warnings) == 2
