"""Linting utilities for generated markdown."""

from __future__ import annotations

from typing import List


class MarkdownLinter:
    """Normalises line endings, trailing whitespace and blank-line runs outside code fences."""

    def __init__(self, *, collapse_blank_lines: bool = True) -> None:
        self.collapse_blank_lines = collapse_blank_lines

    def lint(self, markdown: str) -> str:
        normalized = markdown.replace("\r\n", "\n").replace("\r", "\n")
        lines = normalized.split("\n")
        cleaned: List[str] = []
        in_code = False
        previous_blank = False

        for line in lines:
            stripped = line.rstrip()
            if stripped.lstrip().startswith("```"):
                in_code = not in_code
                cleaned.append(stripped)
                previous_blank = False
                continue

            if not in_code:
                if stripped.startswith("#") and cleaned and cleaned[-1] != "":
                    cleaned.append("")
                if not stripped:
                    if not cleaned or (previous_blank and self.collapse_blank_lines):
                        continue
                    previous_blank = True
                    cleaned.append("")
                    continue

            cleaned.append(stripped)
            previous_blank = False

        while cleaned and cleaned[-1] == "":
            cleaned.pop()

        return "\n".join(cleaned) + "\n"


__all__ = ["MarkdownLinter"]
