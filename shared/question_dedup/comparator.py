"""
Per-field comparison of a candidate question against an existing one.
"""

from typing import Optional

from shared.logging import get_logger

from .config import DedupConfig
from .errors import ComparisonFailure
from .models import FieldSimilarity, QuestionRecord
from .text_processing import string_similarity

log = get_logger("question_dedup", "comparator")


def _safe_similarity(first, second, field: str, failed: list[str]) -> float:
    """Similarity for one field; a comparison failure scores 0.0."""
    try:
        return string_similarity(first, second, field=field)
    except ComparisonFailure as e:
        log.warning(
            "question_dedup.comparison.failed",
            field=field,
            error=str(e),
        )
        failed.append(field)
        return 0.0


def compare_fields(
    candidate: QuestionRecord,
    existing: QuestionRecord,
    config: Optional[DedupConfig] = None,
) -> FieldSimilarity:
    """
    Compare question text and each configured option letter.

    An option missing on either side scores 0.0 and is left out of
    shared_options, so it does not count towards the options average.
    """
    config = config or DedupConfig()
    failed: list[str] = []

    text = _safe_similarity(candidate.text, existing.text, "text", failed)

    options: dict[str, float] = {}
    shared: list[str] = []
    for letter in config.option_letters:
        ours = candidate.options.get(letter)
        theirs = existing.options.get(letter)
        options[letter] = _safe_similarity(ours, theirs, f"option{letter}", failed)
        if ours and theirs:
            shared.append(letter)

    return FieldSimilarity(
        text=text,
        options=options,
        shared_options=tuple(shared),
        failed_fields=failed,
    )
