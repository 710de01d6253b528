"""Core data models shared across documind components."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

SPECIALIST_ROLES: Tuple[str, ...] = ("developer", "architect", "security", "devops", "user")

DEFAULT_CATEGORY = "02-core-concepts"

AI_SECTION_FORMATS: Tuple[str, ...] = ("bullet_points", "numbered_steps", "code_blocks", "minimal")


@dataclass(frozen=True)
class SectionSpec:
    """An AI output section declared by a manifest."""

    name: str
    max_tokens: Optional[int] = None
    priority: Optional[int] = None
    format: Optional[str] = None


@dataclass(frozen=True)
class ActivationRule:
    """Conditional trigger deciding when a specialist's content is loaded."""

    trigger: str
    condition: str
    specialist: str


@dataclass(frozen=True)
class TokenOptimization:
    remove_examples: bool = False
    compress_whitespace: bool = True


@dataclass(frozen=True)
class Manifest:
    """Trusted view of a manifest. Only produced after schema validation passes."""

    name: str
    template_path: str
    default_token_budget: int
    source_path: Path
    specialist_roles: Tuple[str, ...] = ()
    sections: Tuple[SectionSpec, ...] = ()
    activation_rules: Tuple[ActivationRule, ...] = ()
    token_optimization: TokenOptimization = field(default_factory=TokenOptimization)
    category: str = DEFAULT_CATEGORY
    description: Optional[str] = None
    version: Optional[str] = None
    output_path_pattern: Optional[str] = None
    default_slug: Optional[str] = None

    @property
    def template_file(self) -> Path:
        """Template location, resolved relative to the manifest's own directory."""
        return (self.source_path.parent / self.template_path).resolve()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], source_path: Path) -> "Manifest":
        output_format = data.get("ai_output_format")
        sections: List[SectionSpec] = []
        optimization = TokenOptimization()
        if isinstance(output_format, Mapping):
            for raw in output_format.get("sections") or []:
                if not isinstance(raw, Mapping):
                    continue
                sections.append(
                    SectionSpec(
                        name=str(raw.get("name", "")),
                        max_tokens=raw.get("max_tokens"),
                        priority=raw.get("priority"),
                        format=raw.get("format"),
                    )
                )
            raw_opt = output_format.get("token_optimization")
            if isinstance(raw_opt, Mapping):
                optimization = TokenOptimization(
                    remove_examples=bool(raw_opt.get("remove_examples", False)),
                    compress_whitespace=bool(raw_opt.get("compress_whitespace", True)),
                )

        rules = tuple(
            ActivationRule(
                trigger=str(rule["trigger"]),
                condition=str(rule["condition"]),
                specialist=str(rule["specialist"]),
            )
            for rule in data.get("lazy_activation_rules") or []
            if isinstance(rule, Mapping)
        )

        return cls(
            name=str(data["name"]),
            template_path=str(data["template_path"]),
            default_token_budget=int(data["default_token_budget"]),
            source_path=source_path.resolve(),
            specialist_roles=tuple(str(role) for role in data.get("specialist_roles") or []),
            sections=tuple(sections),
            activation_rules=rules,
            token_optimization=optimization,
            category=str(data.get("category") or DEFAULT_CATEGORY),
            description=_optional_str(data.get("description")),
            version=_optional_str(data.get("version")),
            output_path_pattern=_optional_str(data.get("output_path_pattern")),
            default_slug=_optional_str(data.get("default_slug")),
        )

    def summary(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "path": str(self.source_path),
            "category": self.category,
            "specialist_roles": list(self.specialist_roles),
            "default_token_budget": self.default_token_budget,
        }


@dataclass
class BudgetValidation:
    budget: int
    within_budget: bool
    usage_percentage: int
    remaining: int

    @classmethod
    def compute(cls, tokens: int, budget: int) -> "BudgetValidation":
        # Half-up rounding so 89.5% reports as 90%.
        usage = int(math.floor(tokens / budget * 100 + 0.5)) if budget else 0
        return cls(
            budget=budget,
            within_budget=tokens <= budget,
            usage_percentage=usage,
            remaining=budget - tokens,
        )


@dataclass
class TokenCountResult:
    """Token count plus the strategy that produced it."""

    method: str
    tokens: int
    model: str
    details: Dict[str, Any] = field(default_factory=dict)
    budget_validation: Optional[BudgetValidation] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if self.budget_validation is None:
            data.pop("budget_validation")
        return data


@dataclass
class GenerationResult:
    """Outcome of running one manifest through the pipeline."""

    human_path: Path
    ai_path: Path
    token_count: int
    manifest: Manifest
    token_result: Optional[TokenCountResult] = None
    omitted_sections: List[str] = field(default_factory=list)
    truncated_sections: List[str] = field(default_factory=list)

    @property
    def within_budget(self) -> bool:
        return self.token_count <= self.manifest.default_token_budget

    def to_dict(self) -> Dict[str, Any]:
        return {
            "humanPath": str(self.human_path),
            "aiPath": str(self.ai_path),
            "tokenCount": self.token_count,
            "budget": self.manifest.default_token_budget,
            "withinBudget": self.within_budget,
            "manifest": self.manifest.name,
            "type": list(self.manifest.specialist_roles),
            "omittedSections": list(self.omitted_sections),
            "truncatedSections": list(self.truncated_sections),
        }


@dataclass(frozen=True)
class IndexEntry:
    """A single AI document listed in the master index."""

    name: str
    path: str
    category: str
    tokens: int
    manifest: Optional[str] = None


@dataclass
class IndexResult:
    index_path: Path
    total_files: int
    timestamp: str
    entries: List[IndexEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "indexPath": str(self.index_path),
            "totalFiles": self.total_files,
            "timestamp": self.timestamp,
            "entries": [asdict(entry) for entry in self.entries],
        }


def _optional_str(value: object) -> Optional[str]:
    if value is None:
        return None
    return str(value)


__all__ = [
    "AI_SECTION_FORMATS",
    "ActivationRule",
    "BudgetValidation",
    "DEFAULT_CATEGORY",
    "GenerationResult",
    "IndexEntry",
    "IndexResult",
    "Manifest",
    "SPECIALIST_ROLES",
    "SectionSpec",
    "TokenCountResult",
    "TokenOptimization",
]
