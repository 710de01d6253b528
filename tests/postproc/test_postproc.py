"""Tests for AI document post-processing."""

from __future__ import annotations

from documind.postproc import AiDocumentHeader, MarkdownLinter, parse_header, strip_header, with_header


def test_linter_collapses_blank_lines_outside_code() -> None:
    markdown = "\n\nIntro   \n\n\n\nText\n```\n\n\ncode\n```\n\n\n"

    assert MarkdownLinter().lint(markdown) == "Intro\n\nText\n```\n\n\ncode\n```\n"


def test_linter_separates_headings() -> None:
    assert MarkdownLinter().lint("Intro\n## Next\nbody") == "Intro\n\n## Next\nbody\n"


def test_linter_can_keep_blank_runs() -> None:
    linter = MarkdownLinter(collapse_blank_lines=False)

    assert linter.lint("a\n\n\nb\r\n") == "a\n\n\nb\n"


def test_header_round_trip() -> None:
    document = with_header("# Body\n", manifest="concept-ai", roles=["developer", "user"], tokens=42)

    assert document.startswith("<!-- documind:ai manifest=concept-ai roles=developer,user tokens=42 -->\n")
    assert parse_header(document) == AiDocumentHeader("concept-ai", ("developer", "user"), 42)
    assert strip_header(document) == "# Body\n"


def test_header_handles_empty_roles_and_plain_documents() -> None:
    document = with_header("body", manifest="my manifest", roles=[], tokens=0)

    header = parse_header(document)
    assert header is not None
    assert header.manifest == "my-manifest"
    assert header.roles == ()
    assert parse_header("# No header\n") is None
