"""Token counting strategies and the TokenCounter facade."""

from .counter import (
    DEFAULT_BUDGET,
    CountingStrategy,
    ExactCounter,
    HeuristicCounter,
    TokenCounter,
    count_words,
    resolve_budget,
    select_strategy,
)

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
