"""Helper utilities for constructing temporary documind workspaces in tests."""

from __future__ import annotations

import shutil
import textwrap
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import yaml

from documind.generation import TemplateGenerator
from documind.index_builder import IndexBuilder
from documind.orchestrator import Orchestrator
from documind.tokens import HeuristicCounter, TokenCounter
from documind.validators import bundled_schema_path
from documind.workspace import Workspace

DEFAULT_TEMPLATE = """
# {CONCEPT_NAME}

Overview of {CONCEPT_NAME} for the team.

## Overview

{CONCEPT_NAME} keeps request handling predictable.

## Details

Configuration lives next to the service definition.
"""

DEFAULT_RULES: List[Dict[str, str]] = [
    {"trigger": "code_change", "condition": "task touches the module", "specialist": "developer"},
]


class WorkspaceBuilder:
    """Utility for laying out a throwaway documind workspace."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "project"
        self.root.mkdir()

    @property
    def manifest_dir(self) -> Path:
        return self.root / ".documind" / "templates" / "ai-optimized"

    def install(self) -> "WorkspaceBuilder":
        """Create the minimal installation layout plus the bundled schema."""
        (self.root / ".documind" / "core").mkdir(parents=True, exist_ok=True)
        self.manifest_dir.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(bundled_schema_path(), self.manifest_dir / "ai-manifest-schema.yaml")
        return self

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries relative to the workspace root."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def manifest(
        self,
        name: str,
        *,
        template: str = DEFAULT_TEMPLATE,
        budget: int = 2000,
        roles: Sequence[str] = ("developer",),
        sections: Optional[Iterable[Mapping[str, Any]]] = None,
        rules: Optional[Iterable[Mapping[str, str]]] = None,
        **extra: Any,
    ) -> Path:
        """Write a manifest named ``<name>.yaml`` and its template ``<name>.md``."""
        template_path = self.manifest_dir.parent / f"{name}.md"
        template_path.parent.mkdir(parents=True, exist_ok=True)
        template_path.write_text(textwrap.dedent(template).lstrip("\n"), encoding="utf-8")

        data: Dict[str, Any] = {
            "name": name,
            "template_path": f"../{name}.md",
            "specialist_roles": list(roles),
            "default_token_budget": budget,
            "lazy_activation_rules": list(rules if rules is not None else DEFAULT_RULES),
        }
        if sections is not None:
            data["ai_output_format"] = {"sections": [dict(section) for section in sections]}
        data.update(extra)
        return self.write_manifest(f"{name}.yaml", data)

    def write_manifest(self, filename: str, data: Mapping[str, Any]) -> Path:
        path = self.manifest_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(dict(data), sort_keys=False), encoding="utf-8")
        return path

    def workspace(self) -> Workspace:
        return Workspace.open(self.root)

    @staticmethod
    def counter() -> TokenCounter:
        return TokenCounter(strategy=HeuristicCounter())

    def generator(self) -> TemplateGenerator:
        return TemplateGenerator(self.workspace(), counter=self.counter())

    def index_builder(self) -> IndexBuilder:
        return IndexBuilder(self.workspace(), self.counter())

    def orchestrator(self) -> Orchestrator:
        return Orchestrator(self.workspace(), counter=self.counter())

    def read(self, relative: str) -> str:
        return (self.root / relative).read_text(encoding="utf-8")


__all__ = ["WorkspaceBuilder"]
