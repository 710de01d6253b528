"""CLI entrypoints for documind commands."""

from __future__ import annotations

import argparse
import json
import os
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

import yaml

from .errors import DocuMindError
from .generation import TemplateGenerator
from .logging import configure_logging, get_logger
from .orchestrator import Command, Orchestrator
from .scaffold import install_layout
from .tokens import TokenCounter
from .validators import ManifestSchema, ManifestValidator, SchemaError
from .workspace import SCHEMA_FILENAME, Workspace

WORKDIR_ENV = "DOCUMIND_WORKDIR"

# Positional target accepted by each orchestrator command.
_TARGET_OPTIONS = {
    Command.EXPAND.value: "concept",
    Command.ANALYZE.value: "integration",
    Command.UPDATE.value: "section",
    Command.SEARCH.value: "query",
}

logger = get_logger("cli")


def _add_verbose_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Increase log verbosity for troubleshooting.",
    )


def _add_root_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--root",
        default=None,
        help=f"Workspace root (defaults to ${WORKDIR_ENV} or the current directory).",
    )


def _resolve_root(value: str | None) -> Path:
    return Path(value or os.environ.get(WORKDIR_ENV) or Path.cwd()).expanduser().resolve()


def _emit_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


# ----------------------------------------------------------------------
# documind <command>


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="documind",
        description="Generate human and AI-optimized documentation from YAML manifests.",
        epilog=(
            "Commands: bootstrap, expand <concept>, analyze <integration>, "
            "update <section>, index, search <query>. Extra --key value pairs "
            "become template variables."
        ),
    )
    _add_verbose_option(parser)
    _add_root_option(parser)
    parser.add_argument("--log-file", type=Path, default=None, help="Also write logs to this file.")
    parser.add_argument("command", help="Orchestrator command to run.")
    parser.add_argument(
        "target",
        nargs="?",
        default=None,
        help="Concept, integration, section or query, depending on the command.",
    )
    return parser


def parse_variables(extra: Sequence[str]) -> Tuple[Dict[str, str], List[str]]:
    """Turn trailing ``--key value`` / ``--key=value`` pairs into a variables map."""
    variables: Dict[str, str] = {}
    unknown: List[str] = []
    index = 0
    while index < len(extra):
        token = extra[index]
        if token.startswith("--") and len(token) > 2:
            key, sep, value = token[2:].partition("=")
            if sep:
                variables[key] = value
            elif index + 1 < len(extra) and not extra[index + 1].startswith("--"):
                variables[key] = extra[index + 1]
                index += 1
            else:
                unknown.append(token)
        else:
            unknown.append(token)
        index += 1
    return variables, unknown


def build_options(command: str, target: str | None, variables: Dict[str, str]) -> Dict[str, Any]:
    options: Dict[str, Any] = {}
    option_name = _TARGET_OPTIONS.get(command)
    if option_name and target:
        options[option_name] = target
    if variables:
        options["variables"] = variables
    return options


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint for orchestrator commands. Prints one JSON object."""
    parser = _build_parser()
    args, extra = parser.parse_known_args(argv)
    variables, unknown = parse_variables(extra)
    if unknown:
        parser.error(f"unrecognized arguments: {' '.join(unknown)}")

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)
    root = _resolve_root(args.root)
    options = build_options(args.command, args.target, variables)
    logger.debug("Workspace root: %s", root)

    try:
        workspace = Workspace.open(root)
    except DocuMindError as exc:
        _emit_json(
            {
                "success": False,
                "command": args.command,
                "options": options,
                "error": str(exc),
                "errorType": type(exc).__name__,
                "timestamp": datetime.now(UTC).isoformat(),
                "workingDirectory": str(root),
            }
        )
        return 1

    result = Orchestrator(workspace).execute(args.command, options)
    _emit_json(result)
    return 0 if result.get("success") else 1


# ----------------------------------------------------------------------
# documind-tokens


def _build_tokens_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="documind-tokens",
        description="Count LLM tokens in a file or stdin and check them against manifest budgets.",
    )
    _add_verbose_option(parser)
    _add_root_option(parser)
    parser.add_argument("path", nargs="?", default=None, help="File to count.")
    parser.add_argument("--file", dest="file", default=None, help="File to count.")
    parser.add_argument("--model", default=None, help="Model whose tokenizer should be used.")
    parser.add_argument(
        "--method",
        choices=("auto", "exact", "heuristic"),
        default=None,
        help="Counting strategy (defaults to the configured method).",
    )
    parser.add_argument("--manifest", default=None, help="Validate the count against this manifest's budget.")
    parser.add_argument(
        "--format",
        choices=("json", "plain"),
        default="json",
        help="Print the full JSON result or just the token count.",
    )
    parser.add_argument(
        "--validate-budgets",
        action="store_true",
        help="Check every manifest template in the workspace against its budget.",
    )
    return parser


def tokens_main(argv: list[str] | None = None) -> int:
    parser = _build_tokens_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=bool(args.verbose))

    try:
        workspace = Workspace.open(_resolve_root(args.root))
        token_config = workspace.config.tokens
        counter = TokenCounter(
            model=args.model or token_config.model,
            method=args.method or token_config.method,
            max_file_size=token_config.max_file_size,
        )
        if args.validate_budgets:
            return _validate_all_budgets(workspace, counter)

        file_path = args.file or args.path
        if file_path and args.manifest:
            result = counter.validate_budget(file_path, _read_manifest_mapping(Path(args.manifest)))
        elif file_path:
            result = counter.count_file(file_path)
        else:
            if sys.stdin.isatty():
                parser.error("No input provided. Pass a file or pipe text to stdin.")
            result = counter.count(sys.stdin.read())
    except (DocuMindError, OSError, ValueError) as exc:
        print(
            json.dumps({"error": True, "message": str(exc), "timestamp": datetime.now(UTC).isoformat()}),
            file=sys.stderr,
        )
        return 1

    if args.format == "plain":
        print(result.tokens)
    else:
        _emit_json(result.to_dict())
    if result.budget_validation is not None and not result.budget_validation.within_budget:
        return 1
    return 0


def _read_manifest_mapping(path: Path) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"Failed to parse manifest {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Manifest {path} must contain a mapping at the root")
    return data


def _validate_all_budgets(workspace: Workspace, counter: TokenCounter) -> int:
    manifests = TemplateGenerator(workspace, counter=counter).discover_manifests()
    print(f"Validating {len(manifests)} manifests...")
    failed = False
    for manifest_path in manifests:
        try:
            data = _read_manifest_mapping(manifest_path)
            template = (manifest_path.parent / str(data.get("template_path", ""))).resolve()
            if not template.is_file():
                print(f"⚠ {manifest_path.name}: template not found")
                continue
            result = counter.validate_budget(template, data)
        except (DocuMindError, OSError, ValueError) as exc:
            print(f"✗ {manifest_path.name}: {exc}")
            failed = True
            continue
        budget = result.budget_validation
        if budget is None:
            continue
        marker = "✓" if budget.within_budget else "✗"
        failed = failed or not budget.within_budget
        print(f"{marker} {manifest_path.name}: {result.tokens}/{budget.budget} tokens")
    return 1 if failed else 0


# ----------------------------------------------------------------------
# documind-validate


def _build_validate_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="documind-validate",
        description="Validate AI documentation manifests against the manifest schema.",
        epilog="Exit codes: 0 all valid, 2 schema validation failed, 1 parse or I/O failure.",
    )
    _add_verbose_option(parser)
    parser.add_argument("manifests", nargs="+", help="Manifest files to validate.")
    parser.add_argument("--schema", type=Path, default=None, help="Path to ai-manifest-schema.yaml.")
    parser.add_argument("--json", action="store_true", help="Emit machine-readable JSON.")
    return parser


def validate_main(argv: list[str] | None = None) -> int:
    parser = _build_validate_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=bool(args.verbose))

    paths = [Path(item) for item in args.manifests]
    try:
        if args.schema is not None:
            validator = ManifestValidator(ManifestSchema.load(args.schema))
        else:
            search_paths = [path.parent / SCHEMA_FILENAME for path in paths]
            validator = ManifestValidator(search_paths=search_paths)
        results = validator.validate_many(paths)
    except SchemaError as exc:
        print(f"Validation failed: {exc}", file=sys.stderr)
        return 1

    if args.json:
        _emit_json([result.to_dict() for result in results])
    else:
        for result in results:
            print(f"✓ {result.file.name}: Valid" if result.valid else f"✗ {result.file.name}: Invalid")
            for error in result.errors:
                print(f"  Error: {error}")
            for warning in result.warnings:
                print(f"  Warning: {warning}")
            if not result.errors and not result.warnings:
                print("  No issues found")
            print("")
        summary = validator.summarize(results)
        print(f"Summary: {summary.total} files, {summary.errors} errors, {summary.warnings} warnings")

    if any(result.fatal for result in results):
        return 1
    if not all(result.valid for result in results):
        return 2
    return 0


# ----------------------------------------------------------------------
# documind-init / documind-serve


def init_main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="documind-init",
        description="Create the .documind layout and copy the bundled templates.",
    )
    _add_verbose_option(parser)
    _add_root_option(parser)
    parser.add_argument("--force", action="store_true", help="Overwrite templates that already exist.")
    args = parser.parse_args(argv)
    configure_logging(verbose=bool(args.verbose))

    try:
        workspace = Workspace.open(_resolve_root(args.root))
        report = install_layout(workspace, force=bool(args.force))
    except (DocuMindError, OSError) as exc:
        parser.exit(1, f"documind init failed: {exc}\nRun with --verbose for more details.\n")
    print(
        f"documind layout ready at {workspace.relative(workspace.install_dir)} "
        f"({len(report.copied)} files copied, {len(report.skipped)} kept)"
    )
    return 0


def serve_main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="documind-serve", description="Run the documind HTTP service.")
    _add_verbose_option(parser)
    _add_root_option(parser)
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")
    args = parser.parse_args(argv)
    configure_logging(verbose=bool(args.verbose))

    from .service import run_service

    run_service(host=args.host, port=args.port, root=_resolve_root(args.root))
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
