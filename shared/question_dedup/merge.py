"""
Merge a duplicate candidate into the existing question it matched.

Strategies:
- newer: take the candidate's content but keep the existing record's
  identity (id, createdAt, creator, study history, visibility) and any
  extra keys the candidate does not set
- metadata: keep the existing content, refresh part/year/number/category
  from the candidate where it has values
- manual: start from the existing record and take the selected fields
  from the candidate
- keepBoth: the candidate itself, to be inserted as a new record
"""

import copy
from typing import Any, Optional

from .config import OPTION_LETTERS
from .errors import InvalidStrategyError, MergeFailure
from .models import MergeStrategy, QuestionRecord

# Selectable field name -> QuestionRecord attribute
MANUAL_FIELDS = {
    "text": "text",
    "category": "category",
    "part": "part",
    "year": "year",
    "number": "number",
    "correctAnswer": "correct_answer",
    "explanation": "explanation",
}

_SNAKE_ALIASES = {"correct_answer": "correctAnswer"}

METADATA_FIELDS = ("part", "year", "number", "category")


def default_manual_selections(letters: tuple[str, ...] = ("A", "B", "C", "D", "E")) -> dict[str, bool]:
    """Every selectable field set to False (keep the existing value)."""
    selections = {name: False for name in MANUAL_FIELDS}
    for letter in letters:
        selections[f"option{letter}"] = False
    return selections


def normalize_selections(selections: dict[str, Any]) -> dict[str, bool]:
    """
    Validate selection keys and coerce values to bool.

    Raises:
        MergeFailure: If a key is not a selectable field
    """
    normalized = {}
    for key, value in selections.items():
        name = _SNAKE_ALIASES.get(key, key)
        if name not in MANUAL_FIELDS and not _option_letter(name):
            raise MergeFailure(f"Unknown field in manual selections: {key!r}", field=key)
        normalized[name] = bool(value)
    return normalized


def _option_letter(name: str) -> Optional[str]:
    if name.startswith("option") and len(name) == len("option") + 1:
        letter = name[-1].upper()
        if letter in OPTION_LETTERS:
            return letter
    return None


def merge_questions(
    existing: QuestionRecord,
    candidate: QuestionRecord,
    strategy: Any = MergeStrategy.METADATA,
    manual_selections: Optional[dict[str, Any]] = None,
) -> QuestionRecord:
    """
    Produce the record to persist for a duplicate pair.

    Args:
        existing: The matched record already in the corpus
        candidate: The incoming duplicate
        strategy: MergeStrategy or its name
        manual_selections: For "manual", field name -> take from candidate

    Returns:
        A new QuestionRecord; neither input is modified

    Raises:
        InvalidStrategyError: For an unknown strategy, or "skip" (which
            produces no record)
        MergeFailure: For a manual selection naming an unknown field or an
            option the candidate does not have
    """
    strategy = MergeStrategy.parse(strategy)

    if strategy is MergeStrategy.NEWER:
        # Extra keys only the existing record carries survive the overwrite.
        candidate_extra = candidate.model_extra or {}
        kept_extra = {
            key: copy.deepcopy(value)
            for key, value in (existing.model_extra or {}).items()
            if key not in candidate_extra
        }
        return candidate.model_copy(
            update={
                **kept_extra,
                "id": existing.id,
                "created_at": existing.created_at,
                "creator": existing.creator,
                "study_data": copy.deepcopy(existing.study_data),
                "is_public": existing.is_public,
            },
            deep=True,
        )

    if strategy is MergeStrategy.METADATA:
        return existing.model_copy(
            update={name: getattr(candidate, name) or getattr(existing, name) for name in METADATA_FIELDS},
            deep=True,
        )

    if strategy is MergeStrategy.MANUAL:
        return _merge_manual(existing, candidate, manual_selections)

    if strategy is MergeStrategy.KEEP_BOTH:
        return candidate.model_copy(deep=True)

    raise InvalidStrategyError(strategy.value, f"Strategy {strategy.value!r} does not produce a merged record")


def _merge_manual(
    existing: QuestionRecord,
    candidate: QuestionRecord,
    manual_selections: Optional[dict[str, Any]],
) -> QuestionRecord:
    if not manual_selections:
        return existing.model_copy(deep=True)

    selections = normalize_selections(manual_selections)
    update: dict[str, Any] = {}
    options = dict(existing.options)

    for name, selected in selections.items():
        if not selected:
            continue
        letter = _option_letter(name)
        if letter:
            if letter not in candidate.options:
                raise MergeFailure(
                    f"Candidate has no option {letter} to take",
                    field=name,
                )
            options[letter] = candidate.options[letter]
        else:
            attr = MANUAL_FIELDS[name]
            update[attr] = getattr(candidate, attr)

    update["options"] = {letter: options[letter] for letter in OPTION_LETTERS if letter in options}
    return existing.model_copy(update=update, deep=True)
