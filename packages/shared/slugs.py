"""Slug helpers."""

import re

_NON_WORD = re.compile(r"[^\w\s-]")
_SEPARATORS = re.compile(r"[\s_-]+")


def slugify(text: str) -> str:
    """
    Lowercase, drop punctuation, and collapse whitespace/underscores/hyphens
    into single hyphens.

    >>> slugify("  Phase I / II  Trial_Design ")
    'phase-i-ii-trial-design'
    """
    value = _NON_WORD.sub("", text.lower().strip())
    value = _SEPARATORS.sub("-", value)
    return value.strip("-")


def slug_with_id(text: str, unique_id: str) -> str:
    """Combine a slugified name with an opaque unique id."""
    base = slugify(text)
    return f"{base}-{unique_id}" if base else unique_id
