"""
Data models for question deduplication.

Contains:
- QuestionRecord (pydantic, reads/writes the question API shape)
- MergeStrategy enum
- FieldSimilarity, SimilarityResult, MatchCandidate dataclasses
- DuplicateCluster, ScanResult dataclasses
- ResolutionDecision, ImportStats, PairAssessment dataclasses
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .config import OPTION_LETTERS
from .errors import InvalidInputError, InvalidStrategyError


class QuestionRecord(BaseModel):
    """
    A study question as stored by the question API.

    Unknown keys are kept as extra fields so a record survives a
    load/merge/dump cycle without losing data. Options only hold letters
    that have text; a missing letter means there is no such option.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("_id", "id"),
        serialization_alias="_id",
    )
    text: str = ""
    options: dict[str, str] = Field(default_factory=dict)
    correct_answer: str = Field(default="", alias="correctAnswer")
    explanation: str = ""
    category: str = ""
    part: str = ""
    year: str = ""
    number: str = ""
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    creator: Optional[Any] = None
    study_data: list[Any] = Field(default_factory=list, alias="studyData")
    is_public: Optional[bool] = Field(default=None, alias="isPublic")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("text", "explanation", mode="before")
    @classmethod
    def _coerce_free_text(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("category", "part", "year", "number", "correct_answer", mode="before")
    @classmethod
    def _coerce_metadata(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, int) and not isinstance(value, bool):
            value = str(value)
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("correct_answer")
    @classmethod
    def _upper_answer(cls, value: str) -> str:
        return value.upper()

    @field_validator("options", mode="before")
    @classmethod
    def _coerce_options(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, (list, tuple)):
            value = dict(zip(OPTION_LETTERS, value))
        if not isinstance(value, Mapping):
            raise ValueError("options must map letters to option text")

        options = {}
        for letter, text in value.items():
            key = str(letter).strip().upper()
            if key not in OPTION_LETTERS:
                raise ValueError(f"unknown option letter {letter!r}")
            if text is None or text == "":
                continue
            options[key] = text if isinstance(text, str) else str(text)
        return {letter: options[letter] for letter in OPTION_LETTERS if letter in options}

    @field_validator("created_at", mode="before")
    @classmethod
    def _empty_date(cls, value: Any) -> Any:
        return None if value == "" else value

    @field_validator("study_data", mode="before")
    @classmethod
    def _empty_study_data(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def has_text(self) -> bool:
        return bool(self.text and self.text.strip())

    def option(self, letter: str) -> str:
        """Text of an option, or "" when the record has no such option."""
        return self.options.get(letter.upper(), "")

    def excerpt(self, length: int = 50) -> str:
        return self.text[:length]

    def to_dict(self) -> dict:
        """Dump in the API's wire shape (camelCase keys, "_id")."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def coerce_record(value: Any) -> QuestionRecord:
    """
    Turn a dict (or record) into a QuestionRecord.

    Raises:
        InvalidInputError: If the value is not a well-formed question
    """
    if isinstance(value, QuestionRecord):
        return value
    if not isinstance(value, Mapping):
        raise InvalidInputError(
            f"Expected a question mapping, got {type(value).__name__}", role="record"
        )
    try:
        return QuestionRecord.model_validate(dict(value))
    except ValidationError as e:
        raise InvalidInputError(f"Malformed question: {e}", role="record") from e


def record_to_dict(value: Any) -> Any:
    """Wire-shape dict for a record; anything else is returned as-is."""
    if isinstance(value, QuestionRecord):
        return value.to_dict()
    return value


class MergeStrategy(str, Enum):
    """How a duplicate pair is reconciled into the record to persist."""
    NEWER = "newer"  # candidate content, existing identity
    METADATA = "metadata"  # existing content, candidate classification
    MANUAL = "manual"  # per-field choice
    KEEP_BOTH = "keepBoth"  # insert candidate alongside existing
    SKIP = "skip"  # drop the candidate (batch resolution only)

    @classmethod
    def parse(cls, value: Any) -> "MergeStrategy":
        """
        Parse a strategy name ("newer", "keepBoth", "keep_both", ...).

        Raises:
            InvalidStrategyError: If the name is not recognised
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for member in cls:
                if key in (member.value.lower(), member.name.lower()):
                    return member
        raise InvalidStrategyError(value)


@dataclass
class FieldSimilarity:
    """Per-field similarity between a candidate and an existing record."""
    text: float = 0.0
    options: dict[str, float] = field(default_factory=dict)  # letter -> similarity
    shared_options: tuple[str, ...] = ()  # letters present on both sides
    failed_fields: list[str] = field(default_factory=list)

    def option(self, letter: str) -> float:
        return self.options.get(letter, 0.0)

    @property
    def options_average(self) -> float:
        """Mean similarity over options both records have; 0.0 when none."""
        if not self.shared_options:
            return 0.0
        total = sum(self.options.get(letter, 0.0) for letter in self.shared_options)
        return total / len(self.shared_options)

    def as_dict(self) -> dict[str, float]:
        detail = {"text": self.text}
        for letter, value in self.options.items():
            detail[f"option{letter}"] = value
        return detail


@dataclass
class SimilarityResult:
    """Outcome of scoring one (candidate, existing) pair."""
    score: float
    detail: FieldSimilarity
    reasons: list[str] = field(default_factory=list)
    match_count: int = 0
    merge_strategy: MergeStrategy = MergeStrategy.METADATA


@dataclass
class MatchCandidate:
    """An existing record that matched a candidate, with its score."""
    existing: QuestionRecord
    similarity: SimilarityResult

    @property
    def score(self) -> float:
        return self.similarity.score


@dataclass
class DuplicateCluster:
    """A candidate and its ranked matches from the existing corpus."""
    candidate: QuestionRecord
    matches: list[MatchCandidate]
    reasons: list[str] = field(default_factory=list)
    is_duplicate: bool = True

    @property
    def best_match(self) -> Optional[MatchCandidate]:
        return self.matches[0] if self.matches else None

    @property
    def suggested_strategy(self) -> MergeStrategy:
        best = self.best_match
        return best.similarity.merge_strategy if best else MergeStrategy.KEEP_BOTH


@dataclass
class ScanResult:
    """Partition of a candidate batch into duplicates and everything else."""
    non_duplicates: list[Any] = field(default_factory=list)
    clusters: list[DuplicateCluster] = field(default_factory=list)
    skipped: int = 0  # malformed or textless candidates passed through

    @property
    def total(self) -> int:
        return len(self.non_duplicates) + len(self.clusters)

    @property
    def duplicate_count(self) -> int:
        return len(self.clusters)


@dataclass(frozen=True)
class ResolutionDecision:
    """How one duplicate cluster will be resolved."""
    strategy: MergeStrategy
    manual_selections: Optional[dict[str, bool]] = None
    resolved: bool = False


@dataclass
class ImportStats:
    """Counts reported after a batch has been resolved."""
    total: int = 0
    duplicates: int = 0
    merged: int = 0
    kept: int = 0
    skipped: int = 0
    imported: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "duplicates": self.duplicates,
            "merged": self.merged,
            "kept": self.kept,
            "skipped": self.skipped,
            "imported": self.imported,
        }


@dataclass
class PairAssessment:
    """Quick similar/duplicate verdict for two questions."""
    is_similar: bool = False
    is_duplicate: bool = False
    score: float = 0.0
    reasons: list[str] = field(default_factory=list)
    merge_strategy: Optional[MergeStrategy] = None
