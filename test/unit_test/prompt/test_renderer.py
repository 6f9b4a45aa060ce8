from __future__ import annotations

import pytest

from prompt_engine.prompt import parse_placeholders, render_template, render_tool
from prompt_engine.prompt.renderer import (
    collapse_optional_placeholder,
    parse_placeholders_in,
    replace_optional_placeholders,
)

OPTIONAL_CASES = [
    ("{{ optional? }}", ""),
    ("{{ optional1? }} {{ optional2? }}", ""),
    ("hello {{ optional? }} world", "hello world"),
    ("{{ optional? }} world", "world"),
    ("hello {{ optional? }}", "hello"),
    ("hello {{ optional? }}\nworld", "hello\nworld"),
    ("hello\n{{ optional? }} world", "hello\nworld"),
    ("hello\n{{ optional? }}", "hello"),
    ("{{ optional? }}\nworld", "world"),
    ("hello\n\n{{ optional? }}", "hello"),
    ("{{ optional? }}\n    \nworld", "world"),
    ("{{ optional? }}\n\n\nworld", "world"),
    ("before\n{{ optional? }}\nafter", "before\nafter"),
    ("before\n\n{{ optional? }}\nafter", "before\n\nafter"),
    ("before\n{{ optional? }}\n\nafter", "before\n\nafter"),
    ("before\n\n{{ optional? }}\n\nafter", "before\n\nafter"),
    ("before\n\n\n{{ optional? }}\n\nafter", "before\n\n\n\nafter"),
    ("before\n\n\n{{ optional? }}\n\n\nafter", "before\n\n\n\nafter"),
]


@pytest.mark.parametrize("template,expected", OPTIONAL_CASES)
def test_unfilled_optional_placeholders_collapse_whitespace(template: str, expected: str) -> None:
    assert render_template(template, {}) == expected


@pytest.mark.parametrize("template,_expected", OPTIONAL_CASES)
def test_optional_collapsing_is_idempotent(template: str, _expected: str) -> None:
    once = render_template(template, {})
    assert render_template(once, {}) == once


@pytest.mark.parametrize(
    "before,after,expected",
    [
        (" ", " ", " "),
        (" ", "\n", "\n"),
        ("\n", " ", "\n"),
        ("\n", "\n", "\n"),
        ("\n\n", "\n", "\n\n"),
        ("\n", "\n\n\n", "\n\n\n"),
        ("\n\n", "\n\n", "\n\n"),
        ("\n\n\n", "\n\n\n", "\n\n\n\n"),
        ("", "", ""),
        ("  ", " ", ""),
        ("\t", "\n", ""),
    ],
)
def test_collapse_rule_table(before: str, after: str, expected: str) -> None:
    assert collapse_optional_placeholder(before, after) == expected


def test_render_fills_required_placeholders() -> None:
    rendered = render_template(
        "Hello, {{ name }}! The weather is {{ weather }} today.",
        {"name": "Alice", "weather": "sunny"},
    )
    assert rendered == "Hello, Alice! The weather is sunny today."
    assert "{{" not in rendered


def test_render_optional_placeholder_omitted_and_supplied() -> None:
    template = "Hello {{ optional? }}! My name is {{ name }}."
    assert render_template(template, {"name": "Alice"}) == "Hello! My name is Alice."
    assert render_template(template, {"optional": "Bob", "name": "Alice"}) == "Hello Bob! My name is Alice."


def test_render_tolerates_arbitrary_whitespace_inside_braces() -> None:
    assert render_template("{{name}} and {{   name   }}", {"name": "x"}) == "x and x"


def test_render_leaves_missing_required_placeholder_verbatim() -> None:
    assert render_template("Hi {{ name }}, {{ missing }}.", {"name": "Al"}) == "Hi Al, {{ missing }}."


def test_render_ignores_unused_params() -> None:
    assert render_template("static text", {"unused": 1}) == "static text"


def test_render_stringifies_values() -> None:
    assert render_template("{{ n }} items, ok={{ ok }}", {"n": 3, "ok": True}) == "3 items, ok=True"


def test_substitution_runs_before_optional_collapsing() -> None:
    rendered = render_template("A: {{ a }}", {"a": "x {{ y? }} z"})
    # The value is inserted first; an optional token inside it is then
    # collapsed like any other.
    assert rendered == "A: x z"
    assert render_template("{{ a }}\n{{ b? }}\n{{ c }}", {"a": "one\n\n", "c": "two"}) == "one\n\n\ntwo"


def test_param_values_with_regex_replacement_syntax_are_literal() -> None:
    assert render_template("path={{ p }}", {"p": r"C:\new\1"}) == r"path=C:\new\1"


def test_render_keys_with_regex_metacharacters() -> None:
    assert render_template("{{ a.b }} / {{ axb }}", {"a.b": "dot"}) == "dot / {{ axb }}"


def test_json_blob_with_double_braces_is_untouched() -> None:
    template = 'Please respond in the format:\n\n{{\n  "x": {{\n    "y": 1\n  }}\n}}'
    assert render_template(template, {}) == template


def test_render_trims_outer_whitespace() -> None:
    assert render_template("\n  hi {{ who }}  \n", {"who": "there"}) == "hi there"


def test_replace_optional_placeholders_only_touches_optional_tokens() -> None:
    assert replace_optional_placeholders("a {{ req }} {{ opt? }} b") == "a {{ req }} b"


def test_parse_placeholders_dedupes_and_sorts() -> None:
    text = "{{ b }} {{a}} {{ b }} {{ c? }} {{ with-dash }} {{ a.b? }} {{ not valid }}"
    assert parse_placeholders(text) == ("a", "a.b?", "b", "c?", "with-dash")


def test_every_collapsed_optional_placeholder_is_reported() -> None:
    template = "Hi {{ user.name? }} and {{ x-y? }}!"
    assert render_template(template, {}) == "Hi and!"
    assert parse_placeholders(template) == ("user.name?", "x-y?")


def test_parse_placeholders_in_scans_nested_strings() -> None:
    definition = {
        "function": {
            "name": "lookup",
            "description": "Look up {{ topic }}",
            "parameters": {"properties": {"q": {"description": "about {{ topic }} in {{ locale? }}"}}},
        },
        "tags": ["{{ tag }}", 3],
    }
    assert parse_placeholders_in(definition) == ("locale?", "tag", "topic")


def test_render_tool_renders_every_string_and_copies() -> None:
    definition = {
        "type": "function",
        "function": {
            "name": "search",
            "description": "Search for {{ subject }}",
            "parameters": {"type": "object", "required": ["q"], "properties": {"q": {"type": "string"}}},
        },
    }
    rendered = render_tool(definition, {"subject": "cats"})
    assert rendered["function"]["description"] == "Search for cats"
    assert rendered["function"]["parameters"] == definition["function"]["parameters"]
    assert definition["function"]["description"] == "Search for {{ subject }}"
    rendered["function"]["parameters"]["required"].append("x")
    assert definition["function"]["parameters"]["required"] == ["q"]
