"""Command orchestration for documentation bootstrap, expansion and search."""

from __future__ import annotations

import time
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence, Tuple, assert_never

from .errors import DocuMindError, InstallationIncomplete, MissingParameter, UnknownCommand
from .generation import BatchGeneration, TemplateGenerator
from .index_builder import IndexBuilder
from .logging import get_logger
from .models import GenerationResult
from .search import DocumentSearcher
from .tokens import TokenCounter
from .workspace import Workspace

HUMAN_DOC_CATEGORIES = (
    "01-getting-oriented",
    "02-core-concepts",
    "03-integrations",
    "04-development",
)
CONCEPT_KEYWORDS = ("concept", "general")
INTEGRATION_KEYWORDS = ("integration", "service")


class Command(str, Enum):
    BOOTSTRAP = "bootstrap"
    EXPAND = "expand"
    ANALYZE = "analyze"
    UPDATE = "update"
    INDEX = "index"
    SEARCH = "search"

    @property
    def required_option(self) -> str | None:
        return _REQUIRED_OPTIONS.get(self)


_REQUIRED_OPTIONS: Dict[Command, str] = {
    Command.EXPAND: "concept",
    Command.ANALYZE: "integration",
    Command.UPDATE: "section",
    Command.SEARCH: "query",
}


class Orchestrator:
    """Runs named documentation commands against a workspace.

    Every call is stateless: manifests are re-read and the index is rebuilt
    from disk, so repeating a command with the same inputs is safe.
    """

    def __init__(
        self,
        workspace: Workspace,
        *,
        counter: TokenCounter | None = None,
        generator: TemplateGenerator | None = None,
        index_builder: IndexBuilder | None = None,
        searcher: DocumentSearcher | None = None,
    ) -> None:
        self.workspace = workspace
        counter = counter or TokenCounter.from_config(workspace.config.tokens)
        self.generator = generator or TemplateGenerator(workspace, counter=counter)
        self.index_builder = index_builder or IndexBuilder(workspace, counter)
        self.searcher = searcher or DocumentSearcher(workspace)
        self.logger = get_logger("orchestrator")

    def execute(self, command: str, options: Mapping[str, Any] | None = None) -> Dict[str, Any]:
        """Run ``command`` and wrap the outcome in the standard response envelope.

        Failures never propagate; they are reported with ``success: false``.
        """
        opts: Dict[str, Any] = dict(options or {})
        started = time.perf_counter()
        envelope: Dict[str, Any] = {"command": command, "options": opts}
        try:
            kind = parse_command(command)
            self._require_option(kind, opts)
            self.validate_installation()
            self.logger.info("Running %s", kind.value)
            envelope["result"] = self._dispatch(kind, opts)
            envelope["success"] = True
        except DocuMindError as exc:
            self.logger.warning("%s failed: %s", command, exc)
            envelope.update(success=False, error=str(exc), errorType=type(exc).__name__)
        except Exception as exc:  # pragma: no cover
            self.logger.exception("Unexpected failure while running %s", command)
            envelope.update(success=False, error=str(exc), errorType=type(exc).__name__)

        envelope["duration"] = round((time.perf_counter() - started) * 1000)
        envelope["timestamp"] = datetime.now(UTC).isoformat()
        envelope["workingDirectory"] = str(self.workspace.root)
        return envelope

    def validate_installation(self) -> None:
        for directory in (self.workspace.core_dir, self.workspace.templates_dir):
            if not directory.is_dir():
                raise InstallationIncomplete(self.workspace.relative(directory))

    def _dispatch(self, kind: Command, options: Dict[str, Any]) -> Dict[str, Any]:
        match kind:
            case Command.BOOTSTRAP:
                return self.bootstrap()
            case Command.EXPAND:
                return self.expand(str(options["concept"]), _variables(options))
            case Command.ANALYZE:
                return self.analyze(str(options["integration"]), _variables(options))
            case Command.UPDATE:
                return self.update(str(options["section"]), _variables(options))
            case Command.INDEX:
                return self.rebuild_index()
            case Command.SEARCH:
                return self.search(str(options["query"]))
            case _:
                assert_never(kind)

    @staticmethod
    def _require_option(kind: Command, options: Mapping[str, Any]) -> None:
        name = kind.required_option
        if name is not None and not options.get(name):
            raise MissingParameter(kind.value, name)

    # ------------------------------------------------------------------
    # Commands

    def bootstrap(self) -> Dict[str, Any]:
        batch = self.generator.generate_batch(self.generator.discover_manifests())
        self._create_doc_structure()
        index = self.index_builder.update_master_index()
        report = self._report(batch)
        report["updated"] = [self.workspace.relative(index.index_path)]
        return {
            "type": "bootstrap",
            "summary": (
                f"Generated {report['humanDocsCount']} human documentation files "
                f"and {report['aiDocsCount']} AI-optimized files"
            ),
            "totalTokens": sum(result.token_count for result in batch.results),
            **report,
        }

    def expand(self, concept: str, variables: Mapping[str, Any] | None = None) -> Dict[str, Any]:
        bindings = {"concept_name": concept, **(variables or {})}
        batch = self._generate_matching(CONCEPT_KEYWORDS, bindings)
        self.index_builder.update_master_index()
        return {
            "type": "expand",
            "concept": concept,
            "summary": f"Expanded documentation for concept: {concept}",
            **self._report(batch, concept=concept),
        }

    def analyze(self, integration: str, variables: Mapping[str, Any] | None = None) -> Dict[str, Any]:
        bindings = {"service_name": integration, "integration_name": integration, **(variables or {})}
        batch = self._generate_matching(INTEGRATION_KEYWORDS, bindings)
        self.index_builder.update_master_index()
        return {
            "type": "analyze",
            "integration": integration,
            "summary": f"Analyzed and documented integration: {integration}",
            **self._report(batch, integration=integration),
        }

    def update(self, section: str, variables: Mapping[str, Any] | None = None) -> Dict[str, Any]:
        result = self.expand(section, {"section_name": section, **(variables or {})})
        result.update(
            type="update",
            section=section,
            summary=f"Updated documentation section: {section}",
        )
        return result

    def rebuild_index(self) -> Dict[str, Any]:
        index = self.index_builder.update_master_index()
        return {
            "type": "index",
            "summary": "Rebuilt documentation index",
            "indexPath": self.workspace.relative(index.index_path),
            "totalFiles": index.total_files,
            "timestamp": index.timestamp,
        }

    def search(self, query: str) -> Dict[str, Any]:
        results = self.searcher.search(query)
        return {
            "type": "search",
            "query": query,
            "summary": f'Found {len(results)} files matching "{query}"',
            "results": [result.to_dict() for result in results],
            "resultsCount": len(results),
        }

    # ------------------------------------------------------------------
    # Helpers

    def _generate_matching(
        self, keywords: Sequence[str], variables: Mapping[str, Any]
    ) -> BatchGeneration:
        manifests = [
            path
            for path in self.generator.discover_manifests()
            if any(keyword in path.name.lower() for keyword in keywords)
        ]
        if not manifests:
            self.logger.warning(
                "No manifests matching %s in %s",
                "/".join(keywords),
                self.workspace.relative(self.workspace.manifest_dir),
            )
        return self.generator.generate_batch(manifests, variables)

    def _report(self, batch: BatchGeneration, **labels: str) -> Dict[str, Any]:
        human_docs: List[Dict[str, Any]] = []
        ai_docs: List[Dict[str, Any]] = []
        created: List[str] = []
        for result in batch.results:
            human, ai = self._doc_entries(result)
            human_docs.append({**human, **labels})
            ai_docs.append({**ai, **labels})
            created.extend([human["path"], ai["path"]])
        return {
            "humanDocsCount": len(human_docs),
            "aiDocsCount": len(ai_docs),
            "humanDocs": human_docs,
            "aiDocs": ai_docs,
            "created": created,
            "failures": [
                {"manifest": self.workspace.relative(failure.manifest_path), "error": failure.error}
                for failure in batch.failures
            ],
        }

    def _doc_entries(self, result: GenerationResult) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        roles = list(result.manifest.specialist_roles)
        human = {
            "path": self.workspace.relative(result.human_path),
            "type": roles,
            "tokenCount": result.token_count,
        }
        ai = {
            "path": self.workspace.relative(result.ai_path),
            "type": roles,
            "tokenCount": result.token_count,
            "withinBudget": result.within_budget,
        }
        return human, ai

    def _create_doc_structure(self) -> None:
        directories: List[Path] = [self.workspace.docs_dir / name for name in HUMAN_DOC_CATEGORIES]
        directories.append(self.workspace.ai_docs_dir)
        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)


def parse_command(command: str) -> Command:
    try:
        return Command(command)
    except ValueError:
        raise UnknownCommand(command) from None


def _variables(options: Mapping[str, Any]) -> Dict[str, str]:
    raw = options.get("variables")
    if not isinstance(raw, Mapping):
        return {}
    return {str(key): str(value) for key, value in raw.items()}


__all__ = ["Command", "Orchestrator", "parse_command"]
