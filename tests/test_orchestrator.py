"""Tests for orchestrator commands and the response envelope."""

from __future__ import annotations

from typing import Any, Dict

import pytest

from documind.orchestrator import Command, parse_command
from documind.errors import UnknownCommand
from documind.postproc.markers import parse_header
from tests._fixtures.workspace_builder import WorkspaceBuilder


@pytest.fixture
def three_manifests(installed: WorkspaceBuilder) -> WorkspaceBuilder:
    installed.manifest("concept-ai", default_slug="sessions")
    installed.manifest("integration-ai", category="03-integrations", default_slug="redis")
    installed.manifest(
        "architecture-ai",
        category="01-getting-oriented",
        template="# {SYSTEM_NAME}\n\n## Components\n\nThe {SYSTEM_NAME} web tier.\n",
    )
    return installed


def _ok(response: Dict[str, Any]) -> Dict[str, Any]:
    assert response["success"] is True, response.get("error")
    return response["result"]


def test_bootstrap_generates_every_manifest(three_manifests: WorkspaceBuilder) -> None:
    result = _ok(three_manifests.orchestrator().execute("bootstrap"))

    assert result["humanDocsCount"] == 3
    assert result["aiDocsCount"] == 3
    counter = three_manifests.counter()
    measured = sum(counter.count_file(three_manifests.root / doc["path"]).tokens for doc in result["aiDocs"])
    assert result["totalTokens"] == measured
    for doc in result["aiDocs"]:
        header = parse_header(three_manifests.read(doc["path"]))
        assert header is not None
        assert header.tokens == doc["tokenCount"]
    assert len(result["created"]) == 6
    assert result["updated"] == ["docs/ai/AI_README.md"]
    assert result["failures"] == []

    for category in ("01-getting-oriented", "02-core-concepts", "03-integrations", "04-development"):
        assert (three_manifests.root / "docs" / category).is_dir()
    assert "**Total Documents:** 3" in three_manifests.read("docs/ai/AI_README.md")


def test_bootstrap_reports_failures_without_aborting(three_manifests: WorkspaceBuilder) -> None:
    three_manifests.write_manifest("general-broken.yaml", {"name": "general-broken"})

    response = three_manifests.orchestrator().execute("bootstrap")

    result = _ok(response)
    assert result["humanDocsCount"] == 3
    assert [failure["manifest"] for failure in result["failures"]] == [
        ".documind/templates/ai-optimized/general-broken.yaml"
    ]


def test_expand_requires_concept(three_manifests: WorkspaceBuilder) -> None:
    response = three_manifests.orchestrator().execute("expand", {})

    assert response["success"] is False
    assert "concept" in response["error"]
    assert response["errorType"] == "MissingParameter"
    assert "result" not in response


def test_expand_only_uses_concept_manifests(three_manifests: WorkspaceBuilder) -> None:
    result = _ok(
        three_manifests.orchestrator().execute(
            "expand", {"concept": "auth", "variables": {"owner": "identity"}}
        )
    )

    assert result["type"] == "expand"
    assert result["humanDocsCount"] == 1
    assert result["humanDocs"][0]["path"] == "docs/02-core-concepts/auth.md"
    assert result["humanDocs"][0]["concept"] == "auth"
    assert result["aiDocs"][0]["path"] == "docs/ai/02-core-concepts/auth-ai.md"
    assert (three_manifests.root / "docs/ai/AI_README.md").exists()


def test_analyze_uses_integration_manifests(three_manifests: WorkspaceBuilder) -> None:
    result = _ok(three_manifests.orchestrator().execute("analyze", {"integration": "Stripe"}))

    assert result["integration"] == "Stripe"
    assert [doc["path"] for doc in result["humanDocs"]] == ["docs/03-integrations/stripe.md"]


def test_update_is_expand_with_section_name(three_manifests: WorkspaceBuilder) -> None:
    result = _ok(three_manifests.orchestrator().execute("update", {"section": "caching"}))

    assert result["type"] == "update"
    assert result["section"] == "caching"
    assert [doc["path"] for doc in result["humanDocs"]] == ["docs/02-core-concepts/caching.md"]


def test_index_command_rebuilds_from_disk(three_manifests: WorkspaceBuilder) -> None:
    orchestrator = three_manifests.orchestrator()
    _ok(orchestrator.execute("bootstrap"))

    result = _ok(orchestrator.execute("index"))

    assert result["type"] == "index"
    assert result["totalFiles"] == 3
    assert result["indexPath"] == "docs/ai/AI_README.md"


def test_search_is_case_insensitive_with_context(installed: WorkspaceBuilder) -> None:
    installed.write(
        {
            "docs/02-core-concepts/sessions.md": """
            # Sessions

            Redis is used for caching sessions
            Entries expire after an hour.
            """
        }
    )

    result = _ok(installed.orchestrator().execute("search", {"query": "redis"}))

    matches = [entry for entry in result["results"] if entry["path"] == "docs/02-core-concepts/sessions.md"]
    assert len(matches) == 1
    assert matches[0]["type"] == "human"
    (hit,) = matches[0]["matches"]
    assert hit["lineNumber"] == 3
    assert hit["line"] == "Redis is used for caching sessions"
    assert "Redis is used for caching sessions" in hit["context"]
    assert "Entries expire after an hour." in hit["context"]


def test_search_limits_matches_per_file_and_tags_ai_docs(installed: WorkspaceBuilder) -> None:
    installed.write({"docs/ai/02-core-concepts/cache-ai.md": "cache\n" * 8})

    result = _ok(installed.orchestrator().execute("search", {"query": "CACHE"}))

    assert result["resultsCount"] == 1
    assert result["results"][0]["type"] == "ai"
    assert len(result["results"][0]["matches"]) == 5


def test_search_requires_query(installed: WorkspaceBuilder) -> None:
    response = installed.orchestrator().execute("search")

    assert response["success"] is False
    assert "query" in response["error"]


def test_unknown_command(installed: WorkspaceBuilder) -> None:
    response = installed.orchestrator().execute("explode", {})

    assert response["success"] is False
    assert response["error"] == "Unknown command: explode"
    assert response["errorType"] == "UnknownCommand"


def test_installation_must_be_complete(workspace_builder: WorkspaceBuilder) -> None:
    response = workspace_builder.orchestrator().execute("index")

    assert response["success"] is False
    assert response["errorType"] == "InstallationIncomplete"
    assert ".documind/core" in response["error"]
    assert not (workspace_builder.root / "docs").exists()


def test_envelope_fields(installed: WorkspaceBuilder) -> None:
    response = installed.orchestrator().execute("index")

    assert response["command"] == "index"
    assert response["options"] == {}
    assert isinstance(response["duration"], int)
    assert response["timestamp"]
    assert response["workingDirectory"] == str(installed.workspace().root)


def test_parse_command() -> None:
    assert parse_command("search") is Command.SEARCH
    assert Command.EXPAND.required_option == "concept"
    assert Command.INDEX.required_option is None
    with pytest.raises(UnknownCommand):
        parse_command("deploy")
