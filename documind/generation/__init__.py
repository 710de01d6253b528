"""Template substitution and AI document generation."""

from .generator import BatchGeneration, GenerationFailure, TemplateGenerator
from .sections import TRUNCATION_MARKER, FitResult, SectionBudgeter, split_sections
from .substitution import find_placeholders, slugify, substitute

__all__ = [
    "BatchGeneration",
    "FitResult",
    "GenerationFailure",
    "SectionBudgeter",
    "TRUNCATION_MARKER",
    "TemplateGenerator",
    "find_placeholders",
    "slugify",
    "split_sections",
    "substitute",
]
