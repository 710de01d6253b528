"""Case-insensitive line search across generated documentation."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List

from .logging import get_logger
from .workspace import Workspace

MAX_MATCHES_PER_FILE = 5
CONTEXT_LINES = 1


@dataclass
class LineMatch:
    line_number: int
    line: str
    context: str

    def to_dict(self) -> Dict[str, Any]:
        return {"lineNumber": self.line_number, "line": self.line, "context": self.context}


@dataclass
class FileMatches:
    path: str
    kind: str
    matches: List[LineMatch] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "type": self.kind,
            "matches": [match.to_dict() for match in self.matches],
        }


def find_matches(content: str, query: str, *, limit: int = MAX_MATCHES_PER_FILE) -> List[LineMatch]:
    """Return up to ``limit`` matching lines, each with one line of context either side."""
    needle = query.lower()
    lines = content.split("\n")
    matches: List[LineMatch] = []
    for index, line in enumerate(lines):
        if needle not in line.lower():
            continue
        start = max(0, index - CONTEXT_LINES)
        matches.append(
            LineMatch(
                line_number=index + 1,
                line=line.strip(),
                context="\n".join(lines[start : index + CONTEXT_LINES + 1]),
            )
        )
        if len(matches) >= limit:
            break
    return matches


class DocumentSearcher:
    """Scans human documents and AI documents for a query string."""

    def __init__(self, workspace: Workspace) -> None:
        self.workspace = workspace
        self.logger = get_logger("search")

    def search(self, query: str) -> List[FileMatches]:
        results: List[FileMatches] = []
        for kind, path in self._documents():
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                self.logger.warning("Could not search %s: %s", path, exc)
                continue
            matches = find_matches(content, query)
            if matches:
                results.append(
                    FileMatches(path=self.workspace.relative(path), kind=kind, matches=matches)
                )
        return results

    def _documents(self) -> Iterator[tuple[str, Path]]:
        docs_dir = self.workspace.docs_dir
        ai_dir = self.workspace.ai_docs_dir
        if docs_dir.is_dir():
            for path in sorted(docs_dir.rglob("*.md")):
                if path.is_file() and not path.is_relative_to(ai_dir):
                    yield "human", path
        if ai_dir.is_dir():
            for path in sorted(ai_dir.rglob("*.md")):
                if path.is_file():
                    yield "ai", path


__all__ = ["DocumentSearcher", "FileMatches", "LineMatch", "find_matches"]
