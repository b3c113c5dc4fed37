"""
Tests for {{placeholder}} rendering.

Run with:
    pytest pipeline/steps/email_dispatcher/tests/test_template_renderer.py -v
"""

from datetime import date

import pytest

from pipeline.steps.email_dispatcher.template_renderer import (
    extract_variables,
    format_value,
    render,
    render_with_report,
    resolve_placeholder,
)


def test_simple_substitution():
    assert render("{{x}}", {"x": "A"}) == "A"
    assert render("Hi {{ firstName }}!", {"firstName": "Dana"}) == "Hi Dana!"


def test_unresolved_placeholder_is_kept_verbatim():
    assert render("{{missing}}", {}) == "{{missing}}"
    assert render("Dear {{ name }},", {"name": None}) == "Dear {{ name }},"


def test_case_insensitive_key():
    assert render("{{FirstName}}", {"firstName": "Dana"}) == "Dana"


def test_dotted_path():
    context = {"weddingDetails": {"venueName": "Grand Hotel"}, "guests": [{"name": "Ada"}]}
    assert render("{{weddingDetails.venueName}}", context) == "Grand Hotel"
    assert render("{{guests.0.name}}", context) == "Ada"
    assert render("{{weddingDetails.missing}}", context) == "{{weddingDetails.missing}}"


@pytest.mark.parametrize("placeholder", [
    "weddingDetailsVenueName",
    "weddingDetails_venueName",
    "weddingdetailsVenueName",
])
def test_section_prefix_decomposition(placeholder):
    context = {"weddingDetails": {"venueName": "Grand Hotel"}}
    assert render("{{" + placeholder + "}}", context) == "Grand Hotel"


def test_section_prefix_requires_word_boundary():
    # "eventdate" does not split into section "event" + "date": the
    # character after the section must start a new word
    context = {"event": {"date": "wrong"}}
    assert render("{{eventdate}}", context) == "{{eventdate}}"


def test_longest_section_wins():
    context = {
        "wedding": {"detailsVenueName": "Short section"},
        "weddingDetails": {"venueName": "Long section"},
    }
    assert render("{{weddingDetailsVenueName}}", context) == "Long section"


def test_flat_key_beats_section_prefix():
    context = {"weddingDetailsVenueName": "Flat", "weddingDetails": {"venueName": "Nested"}}
    assert resolve_placeholder("weddingDetailsVenueName", context) == "Flat"


@pytest.mark.parametrize("value, expected", [
    (True, "Yes"),
    (False, "No"),
    (3.0, "3"),
    (2.5, "2.5"),
    (date(2026, 6, 20), "2026-06-20"),
    (["Vegan", "Gluten free"], "Vegan, Gluten free"),
    ({"value": "gold", "label": "Gold package"}, "Gold package"),
    (0, "0"),
])
def test_format_value(value, expected):
    assert format_value(value) == expected


def test_render_with_report_lists_unresolved_once():
    result = render_with_report("{{a}} {{b}} {{a}} {{c}}", {"c": "C"})
    assert result.text == "{{a}} {{b}} {{a}} C"
    assert result.unresolved == ["a", "b"]


def test_empty_template():
    assert render(None, {"x": 1}) == ""
    assert render("", {}) == ""


def test_no_html_escaping():
    assert render("{{note}}", {"note": "<b>VIP</b> & guests"}) == "<b>VIP</b> & guests"


def test_render_is_idempotent():
    context = {"x": "A", "nested": {"y": "B"}}
    template = "{{x}} {{nestedY}} {{missing}}"
    assert render(template, context) == render(template, context)
    assert context == {"x": "A", "nested": {"y": "B"}}


def test_extract_variables():
    assert extract_variables("Hi {{name}}, re {{ eventDate }} / {{name}}") == ["name", "eventDate"]
    assert extract_variables(None) == []
