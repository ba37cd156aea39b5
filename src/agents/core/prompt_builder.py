"""
Core prompt builder.

Prompt modules declare PromptTemplate objects and render them with keyword
arguments. Fields that are missing or None render as empty text, so optional
context never leaks "None" into a provider prompt.
"""

from __future__ import annotations

from string import Formatter
from typing import Any, FrozenSet


class _BlankMissing(dict):
    def __missing__(self, key: str) -> str:
        return ""


def bounded_prefix(text: str | None, limit: int) -> str:
    """First `limit` characters of text; None -> ""."""
    if not text or limit <= 0:
        return ""
    return text[:limit]


class PromptTemplate:
    """A str.format-style template with lenient rendering."""

    def __init__(self, text: str):
        self.text = text
        self.fields: FrozenSet[str] = frozenset(
            name for _, name, _, _ in Formatter().parse(text) if name
        )

    def render(self, **kwargs: Any) -> str:
        values = _BlankMissing({k: v for k, v in kwargs.items() if v is not None})
        return self.text.format_map(values)

    def __repr__(self) -> str:
        return f"PromptTemplate(fields={sorted(self.fields)})"


def build_from_template(template: str, **kwargs: Any) -> str:
    """One-off render of a raw template string."""
    if not template:
        return ""
    return PromptTemplate(template).render(**kwargs)
