"""Tests for the FastAPI service mode."""

from __future__ import annotations

import pytest

try:
    from fastapi.testclient import TestClient
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    pytest.skip("fastapi not installed", allow_module_level=True)

from documind.service import create_app
from tests._fixtures.workspace_builder import WorkspaceBuilder


@pytest.fixture
def client(installed: WorkspaceBuilder) -> TestClient:
    return TestClient(create_app(installed.orchestrator))


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_execute_runs_a_command(installed: WorkspaceBuilder, client: TestClient) -> None:
    installed.manifest("concept-ai")

    response = client.post("/execute", json={"command": "expand", "options": {"concept": "auth"}})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["result"]["humanDocs"][0]["path"] == "docs/02-core-concepts/auth.md"
    assert (installed.root / "docs/ai/02-core-concepts/auth-ai.md").is_file()


def test_execute_reports_failures_with_400(client: TestClient) -> None:
    response = client.post("/execute", json={"command": "expand"})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["errorType"] == "MissingParameter"


def test_execute_requires_a_command(client: TestClient) -> None:
    response = client.post("/execute", json={"options": {}})

    assert response.status_code == 422


def test_tokens_endpoint_counts_text(client: TestClient) -> None:
    response = client.post("/tokens", json={"text": "hello world"})

    assert response.status_code == 200
    body = response.json()
    assert body["tokens"] == 3
    assert body["method"] == "heuristic"
    assert "budget_validation" not in body


def test_tokens_endpoint_validates_budget(client: TestClient) -> None:
    response = client.post("/tokens", json={"text": "hello world", "budget": 2})

    budget = response.json()["budget_validation"]
    assert budget == {"budget": 2, "within_budget": False, "usage_percentage": 150, "remaining": -1}


def test_tokens_endpoint_rejects_non_positive_budget(client: TestClient) -> None:
    response = client.post("/tokens", json={"text": "hello", "budget": 0})

    assert response.status_code == 422


def test_validate_endpoint_resolves_workspace_paths(installed: WorkspaceBuilder, client: TestClient) -> None:
    installed.manifest("concept-ai")
    installed.write_manifest("broken-ai.yaml", {"name": "broken-ai"})

    response = client.post(
        "/validate",
        json={
            "paths": [
                ".documind/templates/ai-optimized/concept-ai.yaml",
                ".documind/templates/ai-optimized/broken-ai.yaml",
            ]
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["valid"] is False
    assert [report["status"] for report in body["results"]] == ["valid", "invalid"]
