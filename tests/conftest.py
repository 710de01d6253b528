from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.workspace_builder import WorkspaceBuilder


@pytest.fixture(autouse=True)
def _offline_token_counting(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep token counts deterministic and avoid tokenizer downloads."""
    monkeypatch.setenv("DOCUMIND_TOKEN_METHOD", "heuristic")
    monkeypatch.delenv("DOCUMIND_TOKEN_MODEL", raising=False)
    monkeypatch.delenv("DOCUMIND_WORKDIR", raising=False)


@pytest.fixture
def workspace_builder(tmp_path: Path) -> WorkspaceBuilder:
    """Provide a reusable workspace builder rooted at the pytest tmp_path."""
    return WorkspaceBuilder(tmp_path)


@pytest.fixture
def installed(workspace_builder: WorkspaceBuilder) -> WorkspaceBuilder:
    """A workspace with the .documind layout and schema in place but no manifests."""
    return workspace_builder.install()
