"""Template rendering for prompt templates.

Templates reference parameters with ``{{ name }}`` placeholders. A trailing
``?`` (``{{ name? }}``) marks a placeholder optional: when no value is given
it is removed, together with an amount of surrounding whitespace that keeps
the rendered text tidy (no stray blank lines or double spaces).

Rendering is fail-soft. A required placeholder without a matching parameter
is left in the output verbatim instead of raising, so a template/parameter
mismatch discovered after deployment does not crash a call site.
"""

from __future__ import annotations

import copy
import re
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple

# Names are any run of non-space, non-brace characters; the optional
# pattern below accepts the same names so both agree on what a placeholder is.
_PLACEHOLDER_SCAN = re.compile(r"\{\{\s*([^\s{}]+)\s*\}\}")
_OPTIONAL_PLACEHOLDER = re.compile(r"(\s*)\{\{\s*[^\s{}]+\?\s*\}\}(\s*)")


def _is_newlines(text: str) -> bool:
    return bool(text) and all(c == "\n" for c in text)


def _on_own_line(before: str, after: str) -> Optional[str]:
    # A single newline on each side: the placeholder sat on its own line
    # between two lines of text.
    if len(before) == 1 and len(after) == 1:
        return "\n"
    return None


def _asymmetric_newlines(before: str, after: str) -> Optional[str]:
    if len(before) != len(after):
        return "\n" * (max(len(before) + len(after), 1) - 1)
    return None


def _symmetric_newlines(before: str, after: str) -> Optional[str]:
    return "\n" * (max(len(before) + len(after), 2) - 2)


_NEWLINE_RULES: Tuple[Callable[[str, str], Optional[str]], ...] = (
    _on_own_line,
    _asymmetric_newlines,
    _symmetric_newlines,
)

# (whitespace before, whitespace after) -> replacement
_INLINE_RULES = {
    (" ", " "): " ",
    (" ", "\n"): "\n",
    ("\n", " "): "\n",
}


def collapse_optional_placeholder(before: str, after: str) -> str:
    """Return the replacement for an unfilled optional placeholder.

    ``before`` and ``after`` are the whitespace runs immediately surrounding
    the placeholder. Rules, in order:

    * single space on both sides -> one space
    * one space and one newline (either order) -> one newline
    * only newlines on both sides:
        - one on each side -> one newline
        - different counts -> ``max(before + after, 1) - 1`` newlines
        - equal counts -> ``max(before + after, 2) - 2`` newlines
    * anything else -> removed along with the whitespace
    """
    inline = _INLINE_RULES.get((before, after))
    if inline is not None:
        return inline
    if _is_newlines(before) and _is_newlines(after):
        for rule in _NEWLINE_RULES:
            replacement = rule(before, after)
            if replacement is not None:
                return replacement
    return ""


def replace_optional_placeholders(text: str) -> str:
    """Remove every remaining ``{{ name? }}`` placeholder from ``text``."""
    return _OPTIONAL_PLACEHOLDER.sub(lambda m: collapse_optional_placeholder(m.group(1), m.group(2)), text)


def substitute_params(text: str, params: Mapping[str, Any]) -> str:
    """Replace ``{{ key }}`` and ``{{ key? }}`` for every key in ``params``."""
    rendered = text
    for key, value in params.items():
        pattern = re.compile(r"\{\{\s*" + re.escape(str(key)) + r"\??\s*\}\}")
        replacement = str(value)
        rendered = pattern.sub(lambda _m: replacement, rendered)
    return rendered


def render_template(template: str, params: Mapping[str, Any]) -> str:
    """Render ``template`` with ``params``.

    Required substitutions happen before optional placeholders are collapsed,
    so parameter values are never subject to the whitespace heuristics. The
    result is stripped of leading and trailing whitespace.

    Examples:
        >>> render_template("Hello, {{ name }}! The weather is {{ weather }} today.", {"name": "Alice", "weather": "sunny"})
        'Hello, Alice! The weather is sunny today.'
        >>> render_template("Hello {{ optional? }}! My name is {{ name }}.", {"name": "Alice"})
        'Hello! My name is Alice.'
    """
    rendered = substitute_params(template, params)
    rendered = replace_optional_placeholders(rendered)
    return rendered.strip()


def parse_placeholders(text: str) -> Tuple[str, ...]:
    """Return the sorted, de-duplicated placeholder names found in ``text``.

    Optional placeholders keep their trailing ``?``.
    """
    return tuple(sorted(set(_PLACEHOLDER_SCAN.findall(text))))


def _iter_strings(value: Any) -> Iterable[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, Mapping):
        for item in value.values():
            yield from _iter_strings(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _iter_strings(item)


def parse_placeholders_in(value: Any) -> Tuple[str, ...]:
    """Like :func:`parse_placeholders` but scans every string in a JSON-like value."""
    names: List[str] = []
    for text in _iter_strings(value):
        names.extend(_PLACEHOLDER_SCAN.findall(text))
    return tuple(sorted(set(names)))


def _render_value(value: Any, params: Mapping[str, Any]) -> Any:
    if isinstance(value, str):
        return render_template(value, params)
    if isinstance(value, Mapping):
        return {k: _render_value(v, params) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_render_value(v, params) for v in value]
    return copy.deepcopy(value)


def render_tool(definition: Mapping[str, Any], params: Mapping[str, Any]) -> dict:
    """Return a copy of a tool definition with every string value rendered."""
    return _render_value(definition, params)
