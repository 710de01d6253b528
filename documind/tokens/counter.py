"""Token counting with an exact tokenizer or a word-based heuristic.

Two strategies implement :class:`CountingStrategy`:

* :class:`ExactCounter` encodes text with ``tiktoken`` and reports the length of
  the encoded sequence.
* :class:`HeuristicCounter` multiplies the word count by ``1.33`` and adds flat
  adjustments for markdown structures that tokenize poorly (fenced code blocks,
  inline code spans and URLs).

:func:`select_strategy` picks one once; :class:`TokenCounter` wraps the choice
and adds file handling and budget validation. The chosen strategy is visible in
every result's ``method`` field.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Mapping, Protocol, Union

import tiktoken

from ..config import DEFAULT_MAX_FILE_SIZE, DEFAULT_MODEL, TokenConfig
from ..errors import FileTooLarge, NotText, TokenCountError
from ..logging import get_logger
from ..models import BudgetValidation, Manifest, TokenCountResult

# words -> tokens ratio expressed as a fraction to keep the ceiling exact
HEURISTIC_NUMERATOR = 133
HEURISTIC_DENOMINATOR = 100
CODE_BLOCK_TOKENS = 50
INLINE_CODE_TOKENS = 2
URL_TOKENS = 10
DEFAULT_BUDGET = 5000
BINARY_SAMPLE_SIZE = 512

_FENCED_BLOCK = re.compile(r"```[\s\S]*?```")
_INLINE_CODE = re.compile(r"`[^`]+`")
_URL = re.compile(r"https?://\S+")
_PUNCTUATION = re.compile(r"[^\w\s]")
_ALLOWED_CONTROL_BYTES = {9, 10, 13}

BudgetSource = Union[int, Manifest, Mapping[str, Any]]

logger = get_logger("tokens")


class CountingStrategy(Protocol):
    """Protocol implemented by token counting strategies."""

    method: str
    model: str

    def count(self, text: str) -> TokenCountResult:
        """Return the token count for ``text``."""


def count_words(text: str) -> int:
    """Count words after replacing punctuation with whitespace."""
    return len(_PUNCTUATION.sub(" ", text).split())


def _base_details(text: str) -> dict[str, Any]:
    return {
        "characters": len(text),
        "words": count_words(text),
        "lines": text.count("\n") + 1,
    }


class HeuristicCounter:
    """Approximates sub-word tokenization from word counts."""

    method = "heuristic"
    model = "estimated"

    def count(self, text: str) -> TokenCountResult:
        details = _base_details(text)
        words = details["words"]
        base_tokens = -(-words * HEURISTIC_NUMERATOR // HEURISTIC_DENOMINATOR)

        code_blocks = len(_FENCED_BLOCK.findall(text))
        inline_code = len(_INLINE_CODE.findall(_FENCED_BLOCK.sub(" ", text)))
        urls = len(_URL.findall(text))
        adjustment = (
            code_blocks * CODE_BLOCK_TOKENS
            + inline_code * INLINE_CODE_TOKENS
            + urls * URL_TOKENS
        )

        details.update(
            {
                "code_blocks": code_blocks,
                "inline_code": inline_code,
                "urls": urls,
                "adjustment": adjustment,
            }
        )
        return TokenCountResult(
            method=self.method,
            tokens=base_tokens + adjustment,
            model=self.model,
            details=details,
        )


class ExactCounter:
    """Counts tokens with a tiktoken encoding."""

    method = "tiktoken"

    def __init__(self, encoding: Any, model: str) -> None:
        self._encoding = encoding
        self.model = model

    @classmethod
    def for_model(cls, model: str) -> "ExactCounter":
        return cls(tiktoken.encoding_for_model(model), model)

    def count(self, text: str) -> TokenCountResult:
        tokens = self._encoding.encode(text, disallowed_special=())
        return TokenCountResult(
            method=self.method,
            tokens=len(tokens),
            model=self.model,
            details=_base_details(text),
        )


def select_strategy(model: str = DEFAULT_MODEL, method: str = "auto") -> CountingStrategy:
    """Choose the counting strategy once, falling back to the heuristic when needed."""
    if method == "heuristic":
        logger.debug("Heuristic token counting selected explicitly")
        return HeuristicCounter()
    try:
        strategy = ExactCounter.for_model(model)
    except (KeyError, ValueError, OSError) as exc:
        if method == "exact":
            raise TokenCountError(f"tiktoken could not load an encoding for {model}: {exc}") from exc
        logger.info("tiktoken unavailable for %s (%s); using heuristic estimates", model, exc)
        return HeuristicCounter()
    logger.debug("tiktoken encoding loaded for %s", model)
    return strategy


class TokenCounter:
    """Counts tokens for text and files and validates counts against budgets."""

    def __init__(
        self,
        strategy: CountingStrategy | None = None,
        *,
        model: str = DEFAULT_MODEL,
        method: str = "auto",
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    ) -> None:
        self._strategy = strategy
        self.model = model
        self.method = method
        self.max_file_size = max_file_size

    @classmethod
    def from_config(cls, config: TokenConfig) -> "TokenCounter":
        return cls(model=config.model, method=config.method, max_file_size=config.max_file_size)

    @property
    def strategy(self) -> CountingStrategy:
        # The tokenizer is loaded lazily on first use.
        if self._strategy is None:
            self._strategy = select_strategy(self.model, self.method)
        return self._strategy

    def count(self, text: str) -> TokenCountResult:
        return self.strategy.count(text)

    def count_file(self, path: Path | str) -> TokenCountResult:
        file_path = Path(path)
        size = file_path.stat().st_size
        if size > self.max_file_size:
            raise FileTooLarge(str(file_path), size, self.max_file_size)
        if size == 0:
            return TokenCountResult(
                method="file_empty",
                tokens=0,
                model=self.strategy.model,
                details={"file_path": str(file_path), "file_size": 0},
            )

        raw = file_path.read_bytes()
        if self.is_binary(raw[:BINARY_SAMPLE_SIZE]):
            raise NotText(str(file_path))
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise NotText(str(file_path), "invalid UTF-8") from exc

        result = self.count(text)
        result.details.update({"file_path": str(file_path), "file_size": size})
        return result

    def validate_budget(self, path: Path | str, budget_source: BudgetSource) -> TokenCountResult:
        """Count ``path`` and attach budget usage. Over budget is reported, not raised."""
        result = self.count_file(path)
        budget = resolve_budget(budget_source)
        result.budget_validation = BudgetValidation.compute(result.tokens, budget)
        return result

    @staticmethod
    def is_binary(sample: bytes) -> bool:
        return any(byte == 0 or (byte < 32 and byte not in _ALLOWED_CONTROL_BYTES) for byte in sample)


def resolve_budget(source: BudgetSource) -> int:
    """Extract a token budget from a manifest, a raw mapping or an integer."""
    if isinstance(source, bool):
        raise TypeError("budget must be an integer, manifest or mapping")
    if isinstance(source, int):
        if source <= 0:
            raise ValueError(f"budget must be positive, got {source}")
        return source
    if isinstance(source, Manifest):
        return source.default_token_budget
    if isinstance(source, Mapping):
        for key in ("default_token_budget", "budget"):
            value = source.get(key)
            if isinstance(value, int) and not isinstance(value, bool) and value > 0:
                return value
        return DEFAULT_BUDGET
    raise TypeError(f"Unsupported budget source: {type(source).__name__}")


__all__ = [
    "CountingStrategy",
    "DEFAULT_BUDGET",
    "ExactCounter",
    "HeuristicCounter",
    "TokenCounter",
    "count_words",
    "resolve_budget",
    "select_strategy",
]
