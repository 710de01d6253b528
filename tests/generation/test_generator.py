"""Tests for manifest-driven document generation."""

from __future__ import annotations

import pytest

from documind.errors import DocuMindError, ManifestInvalid
from documind.generation.substitution import PLACEHOLDER_PATTERN
from documind.postproc.markers import parse_header, strip_header
from tests._fixtures.workspace_builder import WorkspaceBuilder


def test_generate_from_manifest_writes_human_and_ai_documents(installed: WorkspaceBuilder) -> None:
    manifest_path = installed.manifest(
        "concept-ai",
        template="""
        # {CONCEPT_NAME}

        {CONCEPT_NAME} relies on {CACHE_BACKEND}.

        ## Overview

        The {concept_name} flow issues tokens.
        """,
        roles=("developer", "architect"),
        rules=[{"trigger": "design", "condition": "design questions", "specialist": "architect"}],
    )
    generator = installed.generator()

    result = generator.generate_from_manifest(manifest_path, {"concept_name": "auth"})

    assert result.human_path == installed.root / "docs" / "02-core-concepts" / "auth.md"
    assert result.ai_path == installed.root / "docs" / "ai" / "02-core-concepts" / "auth-ai.md"
    human = result.human_path.read_text(encoding="utf-8")
    assert human.startswith("# auth\n")
    assert "auth relies on {CACHE_BACKEND}." in human
    assert "The auth flow issues tokens." in human

    ai_text = result.ai_path.read_text(encoding="utf-8")
    header = parse_header(ai_text)
    assert header is not None
    assert header.manifest == "concept-ai"
    assert header.roles == ("developer", "architect")
    assert header.tokens == result.token_count
    assert installed.counter().count(ai_text).tokens == result.token_count
    assert installed.counter().count_file(result.ai_path).tokens == result.token_count
    assert installed.counter().count(strip_header(ai_text)).tokens < result.token_count
    assert result.within_budget
    assert result.to_dict()["type"] == ["developer", "architect"]


def test_fully_bound_template_leaves_no_placeholders(installed: WorkspaceBuilder) -> None:
    manifest_path = installed.manifest("concept-ai")

    result = installed.generator().generate_from_manifest(manifest_path, {"concept_name": "billing"})

    human = result.human_path.read_text(encoding="utf-8")
    assert PLACEHOLDER_PATTERN.search(human) is None
    assert "billing keeps request handling predictable." in human


def test_config_default_variables_sit_under_caller_variables(installed: WorkspaceBuilder) -> None:
    installed.write(
        {
            ".documind.yml": """
            generation:
              default_variables:
                team: platform
                concept_name: fallback
            """
        }
    )
    manifest_path = installed.manifest("concept-ai", template="# {CONCEPT_NAME} by {TEAM}\n")

    result = installed.generator().generate_from_manifest(manifest_path, {"concept_name": "search"})

    assert result.human_path.read_text(encoding="utf-8") == "# search by platform\n"


def test_ai_document_respects_section_caps_and_budget(installed: WorkspaceBuilder) -> None:
    filler = " ".join(["lorem"] * 300)
    manifest_path = installed.manifest(
        "concept-ai",
        template=f"# Topic\n\n## Overview\n\n{filler}\n\n## Notes\n\n{filler}\n",
        budget=250,
        sections=[{"name": "Overview", "max_tokens": 150}],
    )

    result = installed.generator().generate_from_manifest(manifest_path, {"concept_name": "topic"})

    assert result.truncated_sections == ["Overview"]
    assert result.omitted_sections == ["Notes"]
    assert result.token_count <= 250
    assert "## Notes" in result.human_path.read_text(encoding="utf-8")


def test_output_path_pattern_is_slugified(installed: WorkspaceBuilder) -> None:
    manifest_path = installed.manifest(
        "architecture-ai",
        template="# {SYSTEM_NAME}\n",
        output_path_pattern="docs/01-getting-oriented/{system_name}-architecture.md",
    )

    result = installed.generator().generate_from_manifest(manifest_path, {"system_name": "Payments API"})

    assert result.human_path == installed.root / "docs/01-getting-oriented/payments-api-architecture.md"
    assert result.ai_path == (
        installed.root / "docs/ai/01-getting-oriented/payments-api-architecture-ai.md"
    )
    assert result.human_path.read_text(encoding="utf-8") == "# Payments API\n"


def test_output_path_cannot_escape_workspace(installed: WorkspaceBuilder) -> None:
    manifest_path = installed.manifest(
        "concept-ai",
        output_path_pattern="../outside/{concept_name}.md",
    )

    with pytest.raises(DocuMindError, match="escapes the workspace root"):
        installed.generator().generate_from_manifest(manifest_path, {"concept_name": "auth"})


def test_invalid_manifest_raises_with_validator_errors(installed: WorkspaceBuilder) -> None:
    manifest_path = installed.write_manifest("broken-ai.yaml", {"name": "broken-ai"})

    with pytest.raises(ManifestInvalid) as excinfo:
        installed.generator().generate_from_manifest(manifest_path, {})

    assert "Missing required field: 'template_path'" in excinfo.value.errors


def test_generate_all_isolates_failures(installed: WorkspaceBuilder) -> None:
    installed.manifest("concept-ai", default_slug="caching")
    installed.write_manifest("broken-ai.yaml", {"name": "broken-ai"})
    generator = installed.generator()

    batch = generator.generate_batch(generator.discover_manifests())

    assert len(batch.results) == 1
    assert batch.results[0].human_path.name == "caching.md"
    assert [failure.manifest_path.name for failure in batch.failures] == ["broken-ai.yaml"]
    assert generator.generate_all()[0].manifest.name == "concept-ai"


def test_discover_manifests_skips_schema(installed: WorkspaceBuilder) -> None:
    installed.manifest("concept-ai")
    installed.manifest("integration-ai", category="03-integrations")

    names = [path.name for path in installed.generator().discover_manifests()]

    assert names == ["concept-ai.yaml", "integration-ai.yaml"]


def test_generate_all_is_byte_identical_across_runs(installed: WorkspaceBuilder) -> None:
    installed.manifest("concept-ai")
    installed.manifest("integration-ai", category="03-integrations")
    generator = installed.generator()

    first = generator.generate_all()
    snapshot = {path: path.read_bytes() for r in first for path in (r.human_path, r.ai_path)}
    second = generator.generate_all()

    assert [r.human_path for r in second] == [r.human_path for r in first]
    assert {path: path.read_bytes() for path in snapshot} == snapshot


def test_budget_check_on_written_ai_document_matches_generation(installed: WorkspaceBuilder) -> None:
    filler = " ".join(["lorem"] * 120)
    manifest_path = installed.manifest(
        "concept-ai",
        template=f"# Topic\n\n## Overview\n\n{filler}\n\n## Notes\n\n{filler}\n",
        budget=200,
    )
    counter = installed.counter()

    result = installed.generator().generate_from_manifest(manifest_path, {"concept_name": "topic"})
    checked = counter.validate_budget(result.ai_path, result.manifest)

    assert checked.tokens == result.token_count
    assert checked.budget_validation is not None
    assert checked.budget_validation.within_budget is result.within_budget is True
    assert result.omitted_sections == ["Notes"]
