"""
Text processing functions for question deduplication.

Contains:
- Character bigram extraction
- Dice coefficient similarity
- Case-insensitive string similarity with exact-match fallback
"""

import re
from collections import Counter
from typing import Any, Optional

from shared.logging import get_logger

from .errors import ComparisonFailure

log = get_logger("question_dedup", "text_processing")

_WHITESPACE = re.compile(r"\s+")


def extract_bigrams(text: str) -> Counter:
    """Multiset of adjacent character pairs."""
    return Counter(text[i:i + 2] for i in range(len(text) - 1))


def dice_coefficient(first: str, second: str) -> float:
    """
    Sorensen-Dice coefficient over character bigrams.

    Identical strings score 1.0. Strings shorter than two characters have
    no bigrams and score 0.0 unless identical.
    """
    first = _WHITESPACE.sub("", first)
    second = _WHITESPACE.sub("", second)

    if first == second:
        return 1.0
    if len(first) < 2 or len(second) < 2:
        return 0.0

    first_bigrams = extract_bigrams(first)
    second_bigrams = extract_bigrams(second)
    overlap = sum((first_bigrams & second_bigrams).values())

    return (2.0 * overlap) / (len(first) + len(second) - 2)


def string_similarity(first: Optional[Any], second: Optional[Any], field: str = "text") -> float:
    """
    Case-insensitive similarity between two field values, in [0, 1].

    Empty or missing values score 0.0. If the bigram comparison fails the
    result falls back to exact matching after case-folding.

    Raises:
        ComparisonFailure: If either value is present but not a string
    """
    if not first or not second:
        return 0.0
    if not isinstance(first, str) or not isinstance(second, str):
        raise ComparisonFailure(
            f"Cannot compare {type(first).__name__} with {type(second).__name__}",
            field=field,
        )

    s1 = first.lower()
    s2 = second.lower()

    try:
        return dice_coefficient(s1, s2)
    except Exception as e:
        log.warning(
            "question_dedup.similarity.fallback",
            field=field,
            error=str(e),
        )
        return 1.0 if s1 == s2 else 0.0


def percent(value: float) -> int:
    """Similarity as a whole percentage, rounding halves up."""
    return int(value * 100 + 0.5)
