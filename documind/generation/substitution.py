"""Placeholder substitution for markdown templates."""

from __future__ import annotations

import re
from typing import List, Mapping

PLACEHOLDER_PATTERN = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


def substitute(template: str, variables: Mapping[str, object]) -> str:
    """Replace ``{NAME}`` placeholders, matching variable keys case-insensitively.

    Placeholders without a binding are left verbatim so optional variables can
    be omitted.
    """
    lookup = {str(key).upper(): str(value) for key, value in variables.items()}

    def _replace(match: re.Match[str]) -> str:
        return lookup.get(match.group(1).upper(), match.group(0))

    return PLACEHOLDER_PATTERN.sub(_replace, template)


def find_placeholders(text: str) -> List[str]:
    """Return placeholder names in order of first appearance."""
    seen: List[str] = []
    for match in PLACEHOLDER_PATTERN.finditer(text):
        name = match.group(1)
        if name not in seen:
            seen.append(name)
    return seen


def slugify(value: str) -> str:
    slug = value.lower()
    slug = re.sub(r"[^a-z0-9\s_-]", "", slug)
    slug = re.sub(r"[\s_]+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


__all__ = ["PLACEHOLDER_PATTERN", "find_placeholders", "slugify", "substitute"]
