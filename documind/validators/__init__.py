"""Manifest schema validation."""

from .manifest import BatchSummary, ManifestValidator, ValidationResult
from .schema import (
    CORE_REQUIRED_FIELDS,
    FieldRule,
    ManifestSchema,
    SchemaError,
    bundled_schema_path,
    locate_schema,
)

__all__ = [
    "BatchSummary",
    "CORE_REQUIRED_FIELDS",
    "FieldRule",
    "ManifestSchema",
    "ManifestValidator",
    "SchemaError",
    "ValidationResult",
    "bundled_schema_path",
    "locate_schema",
]
