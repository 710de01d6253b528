"""Explicit workspace root used for every path the pipeline touches."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .config import DocuMindConfig, load_config

INSTALL_DIRNAME = ".documind"
SCHEMA_FILENAME = "ai-manifest-schema.yaml"


@dataclass(frozen=True)
class Workspace:
    """Resolves every documind location from a root directory and its config."""

    root: Path
    config: DocuMindConfig = field(compare=False)

    @classmethod
    def open(cls, root: Path | str) -> "Workspace":
        resolved = Path(root).expanduser().resolve()
        return cls(root=resolved, config=load_config(resolved))

    def resolve(self, relative: str | Path) -> Path:
        path = Path(relative)
        if path.is_absolute():
            return path
        return self.root / path

    @property
    def install_dir(self) -> Path:
        return self.root / INSTALL_DIRNAME

    @property
    def core_dir(self) -> Path:
        return self.install_dir / "core"

    @property
    def templates_dir(self) -> Path:
        return self.install_dir / "templates"

    @property
    def manifest_dir(self) -> Path:
        return self.resolve(self.config.manifest_dir)

    @property
    def schema_path(self) -> Path:
        return self.manifest_dir / SCHEMA_FILENAME

    @property
    def docs_dir(self) -> Path:
        return self.resolve(self.config.docs.root)

    @property
    def ai_docs_dir(self) -> Path:
        return self.docs_dir / self.config.docs.ai_dir

    @property
    def index_path(self) -> Path:
        return self.ai_docs_dir / self.config.docs.index_name

    def relative(self, path: Path) -> str:
        try:
            return path.resolve().relative_to(self.root).as_posix()
        except ValueError:
            return str(path)


__all__ = ["INSTALL_DIRNAME", "SCHEMA_FILENAME", "Workspace"]
