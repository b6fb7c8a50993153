"""
Duplicate scoring for question pairs.

score_pair() is what the batch scanner runs for every (candidate, existing)
pair: it counts independent match signals (text, options, question number,
exam year and part), builds human-readable reasons, and combines text and
option similarity into a weighted score.

assess_pair() is the quicker verdict used when comparing two questions
directly, e.g. when editing a question in place.
"""

from typing import Optional

from .comparator import compare_fields
from .config import DedupConfig
from .models import MergeStrategy, PairAssessment, QuestionRecord, SimilarityResult
from .text_processing import percent


def suggest_merge_strategy(candidate: QuestionRecord, existing: QuestionRecord) -> MergeStrategy:
    """
    "newer" if the candidate was created strictly after the existing
    record, otherwise "metadata".

    Timestamps that cannot be compared (one naive, one aware) count as
    not newer.
    """
    if candidate.created_at is None or existing.created_at is None:
        return MergeStrategy.METADATA
    try:
        is_newer = candidate.created_at > existing.created_at
    except TypeError:
        return MergeStrategy.METADATA
    return MergeStrategy.NEWER if is_newer else MergeStrategy.METADATA


def score_pair(
    candidate: QuestionRecord,
    existing: QuestionRecord,
    config: Optional[DedupConfig] = None,
) -> SimilarityResult:
    """
    Score a candidate against one existing question.

    Identity and cross-part filtering are the caller's job; this scores
    any pair it is given.

    Args:
        candidate: The incoming question
        existing: A question already in the corpus
        config: Thresholds and weights (defaults if None)

    Returns:
        SimilarityResult with score, per-field detail, reasons and match count
    """
    config = config or DedupConfig()
    detail = compare_fields(candidate, existing, config)

    reasons: list[str] = []
    match_count = 0

    if detail.text >= config.text_threshold:
        reasons.append(f"Question text is {percent(detail.text)}% similar")
        match_count += 1

    similar_options = [
        letter for letter in config.option_letters
        if detail.option(letter) >= config.options_threshold
        and letter in detail.shared_options
    ]
    if similar_options:
        if len(similar_options) == 1:
            reasons.append("1 answer option is similar")
        else:
            reasons.append(f"{len(similar_options)} answer options are similar")
        # Options count at most twice so they can't outvote the text
        match_count += min(2, len(similar_options))

    if candidate.number and existing.number and candidate.number == existing.number:
        reasons.append(f"Same question number ({candidate.number})")
        match_count += 1

    if (
        candidate.year and existing.year
        and candidate.part and existing.part
        and candidate.year == existing.year
        and candidate.part == existing.part
    ):
        reasons.append(f"Same PRITE year ({candidate.year}) and part ({candidate.part})")
        match_count += 1

    score = detail.text * config.text_weight + detail.options_average * config.options_weight

    return SimilarityResult(
        score=score,
        detail=detail,
        reasons=reasons,
        match_count=match_count,
        merge_strategy=suggest_merge_strategy(candidate, existing),
    )


def assess_pair(
    first: QuestionRecord,
    second: QuestionRecord,
    config: Optional[DedupConfig] = None,
) -> PairAssessment:
    """
    Classify two questions as duplicate, similar, or distinct.

    - Same part, year and question number: duplicate, score 1.0
    - Weighted score above 0.9: duplicate, suggest "newer"
    - Weighted score above 0.75: similar, suggest "manual"
    - Same part and year with text over 50% similar: similar
    """
    config = config or DedupConfig()
    result = PairAssessment()

    if (
        first.number and second.number
        and first.part == second.part
        and first.year == second.year
        and first.number == second.number
    ):
        result.is_duplicate = True
        result.is_similar = True
        result.score = 1.0
        result.reasons.append("Exact metadata match: same part, year, and question number")
        result.merge_strategy = MergeStrategy.METADATA
        return result

    detail = compare_fields(first, second, config)
    options_similarity = detail.options_average
    result.score = detail.text * config.text_weight + options_similarity * config.options_weight

    if result.score > 0.9:
        result.is_duplicate = True
        result.is_similar = True
        result.reasons.append(f"Extremely high text similarity ({detail.text * 100:.1f}%)")
        result.reasons.append(f"Extremely high options similarity ({options_similarity * 100:.1f}%)")
        result.merge_strategy = MergeStrategy.NEWER
    elif result.score > 0.75:
        result.is_similar = True
        result.reasons.append(f"High text similarity ({detail.text * 100:.1f}%)")
        result.reasons.append(f"High options similarity ({options_similarity * 100:.1f}%)")
        result.merge_strategy = MergeStrategy.MANUAL

    if first.part == second.part and first.year == second.year and detail.text > 0.5:
        result.is_similar = True
        result.reasons.append("Same part and year with moderate text similarity")
        if result.merge_strategy is None:
            result.merge_strategy = MergeStrategy.MANUAL

    return result
