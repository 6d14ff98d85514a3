import pytest

from notelinks_api.domain.exceptions import TemplateVariablesMissing
from notelinks_api.templates import TemplateVariable, extract_variables, render_template


def test_extract_variables_in_first_seen_order() -> None:
    content = "Hello {{name}}, your age is {{ age }} and {{name}} lives in {{city}} {{}}"
    assert extract_variables(content) == ["name", "age", "city"]


def test_extract_variables_none() -> None:
    assert extract_variables("no placeholders { here }") == []


def test_render_template_replaces_known_values() -> None:
    out = render_template("# {{meeting_title}}\n**Date:** {{ date }}", {"meeting_title": "Sync", "date": "2026-10-19"})
    assert out == "# Sync\n**Date:** 2026-10-19"


def test_render_template_keeps_unknown_placeholders() -> None:
    assert render_template("{{a}} {{b}}", {"a": "1"}) == "1 {{b}}"


def test_render_template_is_single_pass() -> None:
    assert render_template("{{a}}", {"a": "{{b}}", "b": "x"}) == "{{b}}"


def test_render_template_missing_required() -> None:
    variables = [TemplateVariable("title", required=True), TemplateVariable("notes"), TemplateVariable("date", required=True)]
    with pytest.raises(TemplateVariablesMissing) as excinfo:
        render_template("{{title}} {{date}}", {"title": "  "}, variables)
    assert excinfo.value.names == ["title", "date"]
