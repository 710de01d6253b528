"""Manifest validation: schema checks plus pipeline consistency rules.

Validation never stops at the first problem. Every check appends to shared
``errors``/``warnings`` lists so a single run reports everything wrong with a
manifest; only a parse failure short-circuits. A manifest that passes is
promoted to a typed :class:`~documind.models.Manifest`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

import yaml

from ..logging import get_logger
from ..models import AI_SECTION_FORMATS, SPECIALIST_ROLES, Manifest
from .schema import ManifestSchema, check_type, format_number, locate_schema, type_name

BUDGET_OVERHEAD = 1.5

logger = get_logger("validators.manifest")


@dataclass
class ValidationResult:
    """Findings for a single manifest file."""

    file: Path
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    data: Optional[Dict[str, Any]] = None
    manifest: Optional[Manifest] = None
    fatal: bool = False

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": str(self.file),
            "status": "valid" if self.valid else "invalid",
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


@dataclass
class BatchSummary:
    total: int
    valid: int
    invalid: int
    errors: int
    warnings: int
    fatal: int

    @classmethod
    def from_results(cls, results: Sequence[ValidationResult]) -> "BatchSummary":
        valid = sum(1 for result in results if result.valid)
        return cls(
            total=len(results),
            valid=valid,
            invalid=len(results) - valid,
            errors=sum(len(result.errors) for result in results),
            warnings=sum(len(result.warnings) for result in results),
            fatal=sum(1 for result in results if result.fatal),
        )


class ManifestValidator:
    """Validates AI documentation manifests against ``ai-manifest-schema.yaml``."""

    def __init__(
        self,
        schema: ManifestSchema | None = None,
        *,
        schema_path: Path | None = None,
        search_paths: Sequence[Path] = (),
    ) -> None:
        self._schema = schema
        self._schema_path = schema_path
        self._search_paths = list(search_paths)

    @property
    def schema(self) -> ManifestSchema:
        if self._schema is None:
            path = self._schema_path or locate_schema(self._search_paths)
            logger.debug("Loading manifest schema from %s", path)
            self._schema = ManifestSchema.load(path)
        return self._schema

    def validate(self, manifest_path: Path | str) -> ValidationResult:
        path = Path(manifest_path)
        result = ValidationResult(file=path)

        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
            result.errors.append(f"Failed to parse manifest: {exc}")
            result.fatal = True
            return result
        if not isinstance(data, dict):
            result.errors.append("Failed to parse manifest: root element must be a mapping")
            result.fatal = True
            return result
        result.data = data

        schema = self.schema
        errors, warnings = result.errors, result.warnings
        self._check_required_fields(data, schema, errors)
        self._check_field_rules(data, schema, errors)
        self._check_enums(data, schema, errors)
        self._check_token_budget(data, errors)
        self._check_specialist_roles(data, schema, errors)
        self._check_activation_rules(data, errors)
        self._check_template_path(data, path, errors, warnings)
        self._check_warning_rules(data, schema, warnings)

        if result.valid:
            result.manifest = Manifest.from_mapping(data, path)
        else:
            logger.debug("Manifest %s failed validation with %d errors", path, len(errors))
        return result

    def validate_many(self, manifest_paths: Iterable[Path | str]) -> List[ValidationResult]:
        return [self.validate(path) for path in manifest_paths]

    @staticmethod
    def summarize(results: Sequence[ValidationResult]) -> BatchSummary:
        return BatchSummary.from_results(results)

    # ------------------------------------------------------------------
    # Checks

    @staticmethod
    def _check_required_fields(data: Dict[str, Any], schema: ManifestSchema, errors: List[str]) -> None:
        for name in schema.required_fields:
            if data.get(name) is None:
                errors.append(f"Missing required field: '{name}'")

    @staticmethod
    def _check_field_rules(data: Dict[str, Any], schema: ManifestSchema, errors: List[str]) -> None:
        for name, rule in schema.fields.items():
            value = data.get(name)
            if value is None:
                continue
            if not check_type(value, rule.type):
                errors.append(f"Field '{name}' must be of type {rule.type}, got {type_name(value)}")
                continue

            if isinstance(value, str) and rule.pattern:
                try:
                    matched = re.search(rule.pattern, value) is not None
                except re.error:
                    errors.append(f"Schema pattern for field '{name}' is not a valid regex: {rule.pattern}")
                    continue
                if not matched:
                    errors.append(f"Field '{name}' does not match pattern: {rule.pattern}")

            if check_type(value, "number"):
                if rule.minimum is not None and value < rule.minimum:
                    errors.append(f"Field '{name}' must be >= {format_number(rule.minimum)}, got {value}")
                if rule.maximum is not None and value > rule.maximum:
                    errors.append(f"Field '{name}' must be <= {format_number(rule.maximum)}, got {value}")

            if isinstance(value, list):
                if rule.min_items is not None and len(value) < rule.min_items:
                    errors.append(f"Field '{name}' must have at least {rule.min_items} items")
                if rule.max_items is not None and len(value) > rule.max_items:
                    errors.append(f"Field '{name}' must have at most {rule.max_items} items")

    @staticmethod
    def _check_enums(data: Dict[str, Any], schema: ManifestSchema, errors: List[str]) -> None:
        for name, rule in schema.fields.items():
            value = data.get(name)
            if value is None or not rule.enum:
                continue
            allowed = ", ".join(str(item) for item in rule.enum)
            if isinstance(value, list):
                for item in value:
                    if item not in rule.enum:
                        errors.append(f"Field '{name}' contains invalid value '{item}'. Allowed: {allowed}")
            elif value not in rule.enum:
                errors.append(f"Field '{name}' must be one of: {allowed}, got '{value}'")

    @staticmethod
    def _check_token_budget(data: Dict[str, Any], errors: List[str]) -> None:
        output_format = data.get("ai_output_format")
        if not isinstance(output_format, dict):
            # Type mismatches are reported by the schema field rules.
            return
        sections = output_format.get("sections")
        if sections is None:
            return
        if not isinstance(sections, list):
            errors.append("Field 'ai_output_format.sections' must be of type array")
            return

        total = 0
        for position, section in enumerate(sections, start=1):
            if not isinstance(section, dict):
                errors.append(f"AI output section #{position} must be a mapping")
                continue
            name = section.get("name")
            if not isinstance(name, str) or not name.strip():
                errors.append(f"AI output section #{position} is missing a name")
            max_tokens = section.get("max_tokens")
            if max_tokens is not None:
                if not check_type(max_tokens, "integer") or max_tokens <= 0:
                    errors.append(f"AI output section '{name}' max_tokens must be a positive integer")
                else:
                    total += max_tokens
            priority = section.get("priority")
            if priority is not None and not check_type(priority, "integer"):
                errors.append(f"AI output section '{name}' priority must be an integer")
            fmt = section.get("format")
            if fmt is not None and fmt not in AI_SECTION_FORMATS:
                errors.append(
                    f"AI output section '{name}' has unknown format '{fmt}'. "
                    f"Allowed: {', '.join(AI_SECTION_FORMATS)}"
                )

        budget = data.get("default_token_budget")
        if not check_type(budget, "integer") or budget <= 0:
            return
        limit = budget * BUDGET_OVERHEAD
        if total > limit:
            errors.append(
                f"Total section tokens ({total}) exceeds budget limit ({format_number(limit)})"
            )

    @staticmethod
    def _check_specialist_roles(data: Dict[str, Any], schema: ManifestSchema, errors: List[str]) -> None:
        roles = data.get("specialist_roles")
        roles = roles if isinstance(roles, list) else []

        # Roles already rejected by the schema enum are not reported twice.
        role_rule = schema.fields.get("specialist_roles")
        schema_enum = role_rule.enum if role_rule is not None and role_rule.enum else None
        for role in roles:
            if role in SPECIALIST_ROLES or (schema_enum is not None and role not in schema_enum):
                continue
            errors.append(f"Invalid specialist role '{role}'. Valid roles: {', '.join(SPECIALIST_ROLES)}")

        rules = data.get("lazy_activation_rules")
        for rule in rules if isinstance(rules, list) else []:
            if not isinstance(rule, dict):
                continue
            specialist = rule.get("specialist")
            if specialist and specialist not in roles:
                errors.append(f"Lazy activation rule references unknown specialist '{specialist}'")

    @staticmethod
    def _check_activation_rules(data: Dict[str, Any], errors: List[str]) -> None:
        rules = data.get("lazy_activation_rules")
        if not isinstance(rules, list):
            return
        for position, rule in enumerate(rules, start=1):
            if not isinstance(rule, dict):
                errors.append(f"Lazy activation rule #{position} must be a mapping")
                continue
            for key in ("trigger", "condition", "specialist"):
                if not rule.get(key):
                    errors.append(f"Lazy activation rule #{position} missing required field: {key}")

    @staticmethod
    def _check_template_path(
        data: Dict[str, Any], manifest_path: Path, errors: List[str], warnings: List[str]
    ) -> None:
        template_path = data.get("template_path")
        if not isinstance(template_path, str) or not template_path:
            return
        resolved = (manifest_path.parent / template_path).resolve()
        if not resolved.exists():
            errors.append(f"Template file not found: {template_path} (resolved: {resolved})")
            return
        if not resolved.is_file():
            errors.append(f"Template path is not a file: {template_path} (resolved: {resolved})")
            return
        try:
            with resolved.open("rb") as handle:
                handle.read(1)
        except OSError as exc:
            warnings.append(f"Template file exists but could not be read: {resolved}")
            errors.append(f"Template file unreadable: {template_path} ({exc.strerror or exc})")

    @staticmethod
    def _check_warning_rules(data: Dict[str, Any], schema: ManifestSchema, warnings: List[str]) -> None:
        roles = data.get("specialist_roles")
        role_count = len(roles) if isinstance(roles, list) else 0
        if role_count == 0:
            warnings.append("No specialist roles defined - the document will not target any audience")
        elif role_count > schema.max_specialists:
            warnings.append(f"Many specialists ({role_count}) may complicate coordination")

        rules = data.get("lazy_activation_rules")
        if not isinstance(rules, list) or not rules:
            warnings.append("No lazy activation rules defined - all specialists will be loaded eagerly")

        budget = data.get("default_token_budget")
        if check_type(budget, "integer") and budget > schema.high_token_budget:
            warnings.append(f"High token budget ({budget}) may impact performance")


__all__ = ["BatchSummary", "ManifestValidator", "ValidationResult"]
