"""Manifest-driven generation of human and AI documentation."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from ..errors import DocuMindError, ManifestInvalid
from ..logging import get_logger
from ..models import GenerationResult, Manifest, TokenCountResult
from ..postproc.lint import MarkdownLinter
from ..postproc.markers import with_header
from ..tokens import TokenCounter
from ..validators import ManifestValidator
from ..workspace import SCHEMA_FILENAME, Workspace
from .sections import SectionBudgeter
from .substitution import PLACEHOLDER_PATTERN, slugify, substitute

# Checked in order when naming output files.
SLUG_VARIABLES = ("concept_name", "integration_name", "service_name", "section_name", "system_name")
MANIFEST_SUFFIXES = (".yaml", ".yml")
HEADER_COUNT_PASSES = 4


@dataclass
class GenerationFailure:
    manifest_path: Path
    error: str

    def to_dict(self) -> Dict[str, str]:
        return {"manifest": str(self.manifest_path), "error": self.error}


@dataclass
class BatchGeneration:
    results: List[GenerationResult] = field(default_factory=list)
    failures: List[GenerationFailure] = field(default_factory=list)


class TemplateGenerator:
    """Turns a manifest plus variables into a human document and a budgeted AI document."""

    def __init__(
        self,
        workspace: Workspace,
        *,
        counter: TokenCounter | None = None,
        validator: ManifestValidator | None = None,
        linter: MarkdownLinter | None = None,
    ) -> None:
        self.workspace = workspace
        self.counter = counter or TokenCounter.from_config(workspace.config.tokens)
        self.validator = validator or ManifestValidator(search_paths=[workspace.schema_path])
        self.linter = linter
        self.logger = get_logger("generator")

    def discover_manifests(self) -> List[Path]:
        manifest_dir = self.workspace.manifest_dir
        if not manifest_dir.is_dir():
            return []
        return sorted(
            path
            for path in manifest_dir.iterdir()
            if path.is_file() and path.suffix in MANIFEST_SUFFIXES and path.name != SCHEMA_FILENAME
        )

    def load_manifest(self, manifest_path: Path | str) -> Manifest:
        result = self.validator.validate(manifest_path)
        for warning in result.warnings:
            self.logger.debug("%s: %s", Path(manifest_path).name, warning)
        if result.manifest is None:
            raise ManifestInvalid(str(manifest_path), result.errors)
        return result.manifest

    def generate_from_manifest(
        self, manifest_path: Path | str, variables: Mapping[str, object] | None = None
    ) -> GenerationResult:
        manifest = self.load_manifest(manifest_path)
        bindings: Dict[str, str] = dict(self.workspace.config.default_variables)
        bindings.update({str(key): str(value) for key, value in (variables or {}).items()})

        template = manifest.template_file.read_text(encoding="utf-8")
        human_content = substitute(template, bindings)

        header_cost = self.counter.count(self._header(manifest, manifest.default_token_budget)).tokens
        fitted = SectionBudgeter(lambda text: self.counter.count(text).tokens).fit(
            human_content, manifest, reserve=header_cost
        )
        linter = self.linter or MarkdownLinter(
            collapse_blank_lines=manifest.token_optimization.compress_whitespace
        )
        ai_body = linter.lint(fitted.text)
        ai_content, token_result = self._render_ai_document(manifest, ai_body)

        human_path = self.human_path(manifest, bindings)
        ai_path = self.ai_path(manifest, human_path)
        self._write(human_path, human_content)
        self._write(ai_path, ai_content)

        result = GenerationResult(
            human_path=human_path,
            ai_path=ai_path,
            token_count=token_result.tokens,
            manifest=manifest,
            token_result=token_result,
            omitted_sections=fitted.omitted,
            truncated_sections=fitted.truncated,
        )
        if not result.within_budget:
            self.logger.warning(
                "%s: AI document uses %d tokens, over its %d budget",
                manifest.name,
                result.token_count,
                manifest.default_token_budget,
            )
        self.logger.info(
            "Generated %s and %s (%d tokens)",
            self.workspace.relative(human_path),
            self.workspace.relative(ai_path),
            result.token_count,
        )
        return result

    def generate_all(self) -> List[GenerationResult]:
        return self.generate_batch(self.discover_manifests()).results

    def generate_batch(
        self,
        manifest_paths: Iterable[Path],
        variables: Mapping[str, object] | None = None,
    ) -> BatchGeneration:
        """Generate each manifest in turn; failures are logged and collected, never raised.

        Without explicit ``variables`` every manifest gets its own default bindings.
        """
        batch = BatchGeneration()
        for manifest_path in manifest_paths:
            try:
                bindings = variables
                if bindings is None:
                    bindings = self.default_variables(self.load_manifest(manifest_path))
                batch.results.append(self.generate_from_manifest(manifest_path, bindings))
            except (DocuMindError, OSError, UnicodeDecodeError) as exc:
                self.logger.warning("Skipped %s: %s", manifest_path.name, exc)
                batch.failures.append(GenerationFailure(manifest_path=manifest_path, error=str(exc)))
        return batch

    @staticmethod
    def default_variables(manifest: Manifest) -> Dict[str, str]:
        slug = manifest.default_slug or manifest.name
        return {name: slug for name in ("concept_name", "service_name", "system_name", "section_name")}

    def human_path(self, manifest: Manifest, variables: Mapping[str, str]) -> Path:
        slug = self._slug(manifest, variables)
        if manifest.output_path_pattern:
            bindings = {name: slug for name in PLACEHOLDER_PATTERN.findall(manifest.output_path_pattern)}
            bindings.update({key: slugify(value) or slug for key, value in variables.items()})
            pattern = substitute(manifest.output_path_pattern, bindings)
            path = self.workspace.resolve(pattern).resolve()
        else:
            path = self.workspace.docs_dir / manifest.category / f"{slug}.md"
        if not path.is_relative_to(self.workspace.root):
            raise DocuMindError(f"Output path {path} escapes the workspace root {self.workspace.root}")
        return path

    def ai_path(self, manifest: Manifest, human_path: Path) -> Path:
        docs_dir = self.workspace.docs_dir
        category: Path
        if human_path.parent.is_relative_to(docs_dir) and human_path.parent != docs_dir:
            category = human_path.parent.relative_to(docs_dir)
        else:
            category = Path(manifest.category)
        return self.workspace.ai_docs_dir / category / f"{human_path.stem}-ai.md"

    @staticmethod
    def _header(manifest: Manifest, tokens: int, body: str = "") -> str:
        return with_header(body, manifest=manifest.name, roles=manifest.specialist_roles, tokens=tokens)

    def _render_ai_document(self, manifest: Manifest, body: str) -> Tuple[str, TokenCountResult]:
        """Prepend the header so its ``tokens`` value counts the whole written document.

        The header is part of what it measures, so the count is re-taken until the
        value written into it stops changing.
        """
        tokens = self.counter.count(body).tokens
        for _ in range(HEADER_COUNT_PASSES):
            content = self._header(manifest, tokens, body)
            result = self.counter.count(content)
            if result.tokens == tokens:
                return content, result
            tokens = result.tokens
        self.logger.debug("%s: header token count did not settle, using %d", manifest.name, tokens)
        content = self._header(manifest, tokens, body)
        return content, self.counter.count(content)

    @staticmethod
    def _slug(manifest: Manifest, variables: Mapping[str, str]) -> str:
        candidates: List[Optional[str]] = [variables.get(name) for name in SLUG_VARIABLES]
        candidates.extend([manifest.default_slug, manifest.name])
        for candidate in candidates:
            if candidate:
                slug = slugify(candidate)
                if slug:
                    return slug
        return "document"

    def _write(self, path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        self.logger.debug("Wrote %s", path)


__all__ = ["BatchGeneration", "GenerationFailure", "TemplateGenerator"]
