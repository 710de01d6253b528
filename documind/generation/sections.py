"""Section-aware rendering of AI documents under a token budget.

The substituted template is split at level-two headings. Declared sections
(``ai_output_format.sections``) are matched to headings by normalised name,
optionally reformatted, and truncated to their ``max_tokens`` cap. When the
whole document still exceeds the manifest budget, whole sections are dropped
lowest priority first: undeclared sections go before declared ones, later
sections before earlier ones, and an explicit ``priority`` (higher is kept
longer) overrides declaration order. The preamble above the first heading is
never dropped and surviving sections keep their original order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..models import Manifest, SectionSpec

TRUNCATION_MARKER = "_[section truncated to fit token budget]_"
CODE_BLOCK_MAX_LINES = 20
CODE_BLOCK_HEAD_LINES = 11
CODE_BLOCK_TAIL_LINES = 5

_SECTION_HEADING = re.compile(r"^##\s+(?P<title>.+?)\s*#*\s*$")
_LIST_PREFIX = re.compile(r"^(?:[-*+]\s|\d+[.)]\s|\||>|#)")

Counter = Callable[[str], int]


@dataclass
class MarkdownSection:
    """A level-two section (or the preamble when ``title`` is None)."""

    title: Optional[str]
    lines: List[str]
    position: int

    @property
    def key(self) -> str:
        return normalize_name(self.title or "")

    @property
    def heading(self) -> List[str]:
        return self.lines[:1] if self.title is not None else []

    @property
    def body(self) -> List[str]:
        return self.lines[1:] if self.title is not None else list(self.lines)

    def text(self) -> str:
        return "\n".join(self.lines)


@dataclass
class FitResult:
    text: str
    omitted: List[str] = field(default_factory=list)
    truncated: List[str] = field(default_factory=list)


def normalize_name(name: str) -> str:
    lowered = re.sub(r"[_\-]+", " ", name.lower())
    lowered = re.sub(r"[^a-z0-9 ]", "", lowered)
    return " ".join(lowered.split())


def split_sections(markdown: str) -> List[MarkdownSection]:
    """Split markdown into a preamble plus one entry per ``##`` heading, ignoring code fences."""
    sections: List[MarkdownSection] = [MarkdownSection(title=None, lines=[], position=0)]
    in_code = False
    for line in markdown.split("\n"):
        if line.lstrip().startswith("```"):
            in_code = not in_code
        match = None if in_code else _SECTION_HEADING.match(line)
        if match:
            sections.append(
                MarkdownSection(title=match.group("title"), lines=[line], position=len(sections))
            )
        else:
            sections[-1].lines.append(line)
    return sections


def join_sections(sections: Sequence[MarkdownSection]) -> str:
    return "\n".join(section.text() for section in sections if section.lines)


# ----------------------------------------------------------------------
# Formatters


def _map_prose_lines(lines: Sequence[str], transform: Callable[[str], Optional[str]]) -> List[str]:
    output: List[str] = []
    in_code = False
    for line in lines:
        if line.lstrip().startswith("```"):
            in_code = not in_code
            output.append(line)
            continue
        if in_code:
            output.append(line)
            continue
        transformed = transform(line)
        if transformed is not None:
            output.append(transformed)
    return output


def to_bullet_points(lines: Sequence[str]) -> List[str]:
    def _bullet(line: str) -> str:
        trimmed = line.strip()
        if len(trimmed) > 10 and not _LIST_PREFIX.match(trimmed):
            return f"- {trimmed}"
        return line

    return _map_prose_lines(lines, _bullet)


def to_numbered_steps(lines: Sequence[str]) -> List[str]:
    step = 0

    def _number(line: str) -> str:
        nonlocal step
        trimmed = line.strip()
        if len(trimmed) > 10 and not _LIST_PREFIX.match(trimmed):
            step += 1
            return f"{step}. {trimmed}"
        return line

    return _map_prose_lines(lines, _number)


def shorten_code_blocks(lines: Sequence[str]) -> List[str]:
    output: List[str] = []
    block: List[str] = []
    in_code = False
    for line in lines:
        if line.lstrip().startswith("```"):
            if in_code:
                block.append(line)
                if len(block) > CODE_BLOCK_MAX_LINES:
                    block = [
                        *block[:CODE_BLOCK_HEAD_LINES],
                        "... (truncated for brevity)",
                        *block[-CODE_BLOCK_TAIL_LINES:],
                    ]
                output.extend(block)
                block = []
                in_code = False
            else:
                block = [line]
                in_code = True
            continue
        if in_code:
            block.append(line)
        else:
            output.append(line)
    # unterminated fence: keep as-is
    output.extend(block)
    return output


def minimize(lines: Sequence[str]) -> List[str]:
    previous_blank = False

    def _compact(line: str) -> Optional[str]:
        nonlocal previous_blank
        stripped = line.strip()
        if not stripped:
            if previous_blank:
                return None
            previous_blank = True
            return ""
        previous_blank = False
        if stripped.startswith("|"):
            return line.rstrip()
        indent = line[: len(line) - len(line.lstrip())]
        return indent + " ".join(stripped.split())

    return _map_prose_lines(lines, _compact)


FORMATTERS: Dict[str, Callable[[Sequence[str]], List[str]]] = {
    "bullet_points": to_bullet_points,
    "numbered_steps": to_numbered_steps,
    "code_blocks": shorten_code_blocks,
    "minimal": minimize,
}


# ----------------------------------------------------------------------
# Budget fitting


class SectionBudgeter:
    """Applies a manifest's AI output format to substituted markdown."""

    def __init__(self, count: Counter) -> None:
        self._count = count

    def fit(self, markdown: str, manifest: Manifest, *, reserve: int = 0) -> FitResult:
        """Fit ``markdown`` into the manifest budget minus ``reserve`` tokens kept for the header."""
        sections = split_sections(markdown)
        specs = self._match_specs(sections, manifest.sections)

        if manifest.token_optimization.remove_examples:
            sections = [section for section in sections if not _is_examples(section)]

        sections = [self._format(section, specs.get(section.position)) for section in sections]

        truncated: List[str] = []
        capped: List[MarkdownSection] = []
        for section in sections:
            entry = specs.get(section.position)
            if entry is not None and entry[1].max_tokens:
                section, was_truncated = self._truncate(section, entry[1].max_tokens)
                if was_truncated:
                    truncated.append(section.title or "")
            capped.append(section)

        kept, omitted = self._drop_to_budget(capped, specs, manifest.default_token_budget - reserve)
        return FitResult(text=join_sections(kept), omitted=omitted, truncated=truncated)

    @staticmethod
    def _match_specs(
        sections: Sequence[MarkdownSection], specs: Sequence[SectionSpec]
    ) -> Dict[int, Tuple[int, SectionSpec]]:
        matched: Dict[int, Tuple[int, SectionSpec]] = {}
        for declared_index, spec in enumerate(specs):
            wanted = normalize_name(spec.name)
            if not wanted:
                continue
            candidates = [s for s in sections if s.title is not None and s.position not in matched]
            hit = next((s for s in candidates if s.key == wanted), None)
            if hit is None:
                hit = next((s for s in candidates if s.key.startswith(wanted)), None)
            if hit is not None:
                matched[hit.position] = (declared_index, spec)
        return matched

    @staticmethod
    def _format(section: MarkdownSection, entry: Optional[Tuple[int, SectionSpec]]) -> MarkdownSection:
        if entry is None or section.title is None:
            return section
        formatter = FORMATTERS.get(entry[1].format or "")
        if formatter is None:
            return section
        return replace(section, lines=[*section.heading, *formatter(section.body)])

    def _truncate(self, section: MarkdownSection, cap: int) -> Tuple[MarkdownSection, bool]:
        if self._count(section.text()) <= cap:
            return section, False

        body = section.body

        def render(keep: int) -> List[str]:
            kept = body[:keep]
            if sum(1 for line in kept if line.lstrip().startswith("```")) % 2:
                kept = [*kept, "```"]
            return [*section.heading, *kept, "", TRUNCATION_MARKER]

        low, high = 0, len(body)
        while low < high:
            middle = (low + high + 1) // 2
            if self._count("\n".join(render(middle))) <= cap:
                low = middle
            else:
                high = middle - 1
        return replace(section, lines=render(low)), True

    def _drop_to_budget(
        self,
        sections: List[MarkdownSection],
        specs: Dict[int, Tuple[int, SectionSpec]],
        budget: int,
    ) -> Tuple[List[MarkdownSection], List[str]]:
        kept = list(sections)
        omitted: List[str] = []

        def rank(section: MarkdownSection) -> Tuple[int, int, int]:
            entry = specs.get(section.position)
            if entry is None:
                return (0, 0, -section.position)
            declared_index, spec = entry
            priority = spec.priority if spec.priority is not None else -declared_index
            return (1, priority, -section.position)

        while self._count(join_sections(kept)) > budget:
            droppable = [section for section in kept if section.title is not None]
            if not droppable:
                break
            victim = min(droppable, key=rank)
            kept.remove(victim)
            omitted.append(victim.title or "")
        return kept, omitted


def _is_examples(section: MarkdownSection) -> bool:
    return section.title is not None and section.key.startswith("example")


__all__ = [
    "FORMATTERS",
    "FitResult",
    "MarkdownSection",
    "SectionBudgeter",
    "TRUNCATION_MARKER",
    "join_sections",
    "minimize",
    "normalize_name",
    "shorten_code_blocks",
    "split_sections",
    "to_bullet_points",
    "to_numbered_steps",
]
