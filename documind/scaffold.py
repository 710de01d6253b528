"""Seeds a workspace with the ``.documind`` layout and bundled templates."""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from .logging import get_logger
from .workspace import Workspace

BUNDLED_TEMPLATES = Path(__file__).with_name("templates")

logger = get_logger("scaffold")


@dataclass
class InstallReport:
    copied: List[Path] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)
    created_dirs: List[Path] = field(default_factory=list)


def install_layout(workspace: Workspace, *, force: bool = False) -> InstallReport:
    """Create ``.documind/core`` and copy bundled templates into ``.documind/templates``.

    Existing files are left untouched unless ``force`` is set.
    """
    report = InstallReport()
    for directory in (workspace.core_dir, workspace.templates_dir):
        if not directory.is_dir():
            directory.mkdir(parents=True, exist_ok=True)
            report.created_dirs.append(directory)

    for source in sorted(BUNDLED_TEMPLATES.rglob("*")):
        if not source.is_file() or "__pycache__" in source.parts:
            continue
        target = workspace.templates_dir / source.relative_to(BUNDLED_TEMPLATES)
        if target.exists() and not force:
            report.skipped.append(target)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, target)
        report.copied.append(target)

    logger.info(
        "Installed documind layout in %s (%d copied, %d kept)",
        workspace.root,
        len(report.copied),
        len(report.skipped),
    )
    return report


__all__ = ["InstallReport", "install_layout"]
