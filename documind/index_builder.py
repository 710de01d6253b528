"""Rebuilds the master index of generated AI documents."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Dict, List, Sequence

from jinja2 import Environment, FileSystemLoader

from .logging import get_logger
from .models import IndexEntry, IndexResult
from .postproc.markers import parse_header
from .tokens import TokenCounter
from .workspace import Workspace

INDEX_TEMPLATE = "index.md.j2"
AI_DOC_SUFFIX = "-ai.md"

# Filename keywords used when a document sits directly in the AI directory.
_CATEGORY_KEYWORDS = (
    ("concept", "concept"),
    ("integration", "integration"),
    ("architecture", "architecture"),
    ("arch", "architecture"),
)


@dataclass
class CategoryGroup:
    """Index entries sharing a category, as exposed to the index template."""

    name: str
    title: str
    entries: List[IndexEntry]

    @property
    def token_range(self) -> str:
        tokens = [entry.tokens for entry in self.entries]
        if not tokens:
            return "0"
        low, high = min(tokens), max(tokens)
        return str(low) if low == high else f"{low}-{high}"


class IndexBuilder:
    """Derives ``AI_README.md`` from the AI documents currently on disk.

    The index is regenerated wholesale on each call; nothing is carried over
    from the previous index file.
    """

    def __init__(self, workspace: Workspace, counter: TokenCounter | None = None) -> None:
        self.workspace = workspace
        self.counter = counter or TokenCounter.from_config(workspace.config.tokens)
        self.logger = get_logger("index")
        self._env = self._create_env()

    def update_master_index(self) -> IndexResult:
        entries = self.scan()
        timestamp = datetime.now(UTC).isoformat(timespec="seconds")
        index_path = self.workspace.index_path
        index_path.parent.mkdir(parents=True, exist_ok=True)
        index_path.write_text(self.render(entries, timestamp), encoding="utf-8")
        self.logger.info("Master index rebuilt with %d documents", len(entries))
        return IndexResult(
            index_path=index_path,
            total_files=len(entries),
            timestamp=timestamp,
            entries=entries,
        )

    def scan(self) -> List[IndexEntry]:
        ai_dir = self.workspace.ai_docs_dir
        if not ai_dir.is_dir():
            return []
        index_path = self.workspace.index_path
        entries: List[IndexEntry] = []
        for path in sorted(ai_dir.rglob(f"*{AI_DOC_SUFFIX}")):
            if not path.is_file() or path == index_path:
                continue
            entries.append(self._entry_for(path, ai_dir))
        return entries

    def render(self, entries: Sequence[IndexEntry], timestamp: str) -> str:
        groups = group_by_category(entries)
        tokens = [entry.tokens for entry in entries]
        total = sum(tokens)
        template = self._env.get_template(INDEX_TEMPLATE)
        rendered = template.render(
            generated=timestamp,
            total_documents=len(entries),
            groups=groups,
            total_tokens=total,
            average_tokens=round(total / len(tokens)) if tokens else 0,
            largest_tokens=max(tokens, default=0),
        )
        return rendered.rstrip("\n") + "\n"

    def _entry_for(self, path: Path, ai_dir: Path) -> IndexEntry:
        text = path.read_text(encoding="utf-8")
        header = parse_header(text)
        if header is not None:
            tokens = header.tokens
            manifest = header.manifest
        else:
            tokens = self.counter.count(text).tokens
            manifest = None

        relative = path.relative_to(ai_dir)
        if len(relative.parts) > 1:
            category = relative.parts[0]
        else:
            category = infer_category(path.name)
        return IndexEntry(
            name=display_name(path),
            path=self.workspace.relative(path),
            category=category,
            tokens=tokens,
            manifest=manifest,
        )

    def _create_env(self) -> Environment:
        directories = [self.workspace.templates_dir, Path(__file__).with_name("templates")]
        loader = FileSystemLoader([str(directory) for directory in directories])
        return Environment(loader=loader, autoescape=False, trim_blocks=True, lstrip_blocks=True)


def infer_category(filename: str) -> str:
    name = filename.lower()
    for keyword, category in _CATEGORY_KEYWORDS:
        if keyword in name:
            return category
    return "other"


def display_name(path: Path) -> str:
    stem = path.name[: -len(AI_DOC_SUFFIX)] if path.name.endswith(AI_DOC_SUFFIX) else path.stem
    return " ".join(word.capitalize() for word in stem.replace("_", "-").split("-") if word)


def category_title(category: str) -> str:
    words = [word for word in category.replace("_", "-").split("-") if word]
    if words and words[0].isdigit():
        words = words[1:]
    return " ".join(word.capitalize() for word in words) or category


def group_by_category(entries: Sequence[IndexEntry]) -> List[CategoryGroup]:
    grouped: Dict[str, List[IndexEntry]] = defaultdict(list)
    for entry in entries:
        grouped[entry.category].append(entry)
    return [
        CategoryGroup(name=name, title=category_title(name), entries=grouped[name])
        for name in sorted(grouped)
    ]


__all__ = [
    "CategoryGroup",
    "IndexBuilder",
    "category_title",
    "display_name",
    "group_by_category",
    "infer_category",
]
