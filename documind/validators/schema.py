"""Manifest schema loading and field-level checks."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import yaml

from ..errors import DocuMindError
from ..workspace import SCHEMA_FILENAME

# Always enforced, even when a custom schema forgets them.
CORE_REQUIRED_FIELDS: Tuple[str, ...] = ("name", "template_path", "default_token_budget")

_TYPE_NAMES = {
    bool: "boolean",
    int: "integer",
    float: "number",
    str: "string",
    list: "array",
    dict: "object",
}


class SchemaError(DocuMindError):
    """Raised when the manifest schema cannot be located or parsed."""


@dataclass(frozen=True)
class FieldRule:
    """Declared constraints for one manifest field."""

    type: Optional[str] = None
    pattern: Optional[str] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    min_items: Optional[int] = None
    max_items: Optional[int] = None
    enum: Optional[Tuple[Any, ...]] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "FieldRule":
        enum = data.get("enum")
        return cls(
            type=_optional_str(data.get("type")),
            pattern=_optional_str(data.get("pattern")),
            minimum=data.get("minimum"),
            maximum=data.get("maximum"),
            min_items=data.get("min_items"),
            max_items=data.get("max_items"),
            enum=tuple(enum) if isinstance(enum, list) else None,
        )


_CORE_FIELD_RULES: Dict[str, FieldRule] = {
    "name": FieldRule(type="string"),
    "template_path": FieldRule(type="string"),
    "default_token_budget": FieldRule(type="integer", minimum=1),
}


@dataclass(frozen=True)
class ManifestSchema:
    """Parsed ``ai-manifest-schema.yaml``."""

    required_fields: Tuple[str, ...] = CORE_REQUIRED_FIELDS
    fields: Dict[str, FieldRule] = field(default_factory=lambda: dict(_CORE_FIELD_RULES))
    max_specialists: int = 4
    high_token_budget: int = 8000
    source: Optional[Path] = None

    @classmethod
    def load(cls, path: Path) -> "ManifestSchema":
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise SchemaError(f"Failed to load schema {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise SchemaError(f"Schema {path} must contain a mapping at the root")
        return cls.from_mapping(data, source=path)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, source: Optional[Path] = None) -> "ManifestSchema":
        declared_required = [str(item) for item in data.get("required_fields") or []]
        required = _unique([*declared_required, *CORE_REQUIRED_FIELDS])

        fields: Dict[str, FieldRule] = dict(_CORE_FIELD_RULES)
        definitions = data.get("field_definitions") or {}
        if isinstance(definitions, Mapping):
            for name, definition in definitions.items():
                if isinstance(definition, Mapping):
                    fields[str(name)] = FieldRule.from_mapping(definition)

        warning_rules = data.get("warning_rules") or {}
        max_specialists = 4
        high_budget = 8000
        if isinstance(warning_rules, Mapping):
            max_specialists = int(warning_rules.get("max_specialists", max_specialists))
            high_budget = int(warning_rules.get("high_token_budget", high_budget))

        return cls(
            required_fields=tuple(required),
            fields=fields,
            max_specialists=max_specialists,
            high_token_budget=high_budget,
            source=source,
        )


def bundled_schema_path() -> Path:
    return Path(__file__).resolve().parent.parent / "templates" / "ai-optimized" / SCHEMA_FILENAME


def locate_schema(candidates: Sequence[Optional[Path]] = ()) -> Path:
    """Return the first existing schema among ``candidates``, then the bundled copy."""
    for candidate in [*candidates, bundled_schema_path()]:
        if candidate is not None and candidate.is_file():
            return candidate
    raise SchemaError(f"{SCHEMA_FILENAME} not found in expected locations")


def check_type(value: Any, expected: Optional[str]) -> bool:
    if expected == "string":
        return isinstance(value, str)
    if expected == "integer":
        return isinstance(value, int) and not isinstance(value, bool)
    if expected == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected == "boolean":
        return isinstance(value, bool)
    if expected == "array":
        return isinstance(value, list)
    if expected == "object":
        return isinstance(value, dict)
    # Unknown or undeclared types are not enforced.
    return True


def type_name(value: Any) -> str:
    if value is None:
        return "null"
    for py_type, name in _TYPE_NAMES.items():
        if type(value) is py_type:
            return name
    return type(value).__name__


def format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def _unique(items: Iterable[str]) -> List[str]:
    seen: set[str] = set()
    ordered: List[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            ordered.append(item)
    return ordered


def _optional_str(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


__all__ = [
    "CORE_REQUIRED_FIELDS",
    "FieldRule",
    "ManifestSchema",
    "SchemaError",
    "bundled_schema_path",
    "check_type",
    "format_number",
    "locate_schema",
    "type_name",
]
