"""Post-processing helpers for generated AI documents."""

from .lint import MarkdownLinter
from .markers import AiDocumentHeader, parse_header, strip_header, with_header

__all__ = ["AiDocumentHeader", "MarkdownLinter", "parse_header", "strip_header", "with_header"]
