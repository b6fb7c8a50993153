"""
Configuration for duplicate detection.

DedupConfig is an immutable value passed into every scan, score and merge
call. Defaults match the thresholds the import screen has always used.
"""

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

# Option letters a question may carry. Records beyond E are rare but exist.
OPTION_LETTERS = tuple("ABCDEFGHIJKLMNO")


class DedupConfig(BaseModel):
    """Thresholds and weights for duplicate detection."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    text_threshold: float = Field(
        default=0.7, ge=0.0, le=1.0,
        validation_alias=AliasChoices("text_threshold", "textThreshold"),
    )
    options_threshold: float = Field(
        default=0.6, ge=0.0, le=1.0,
        validation_alias=AliasChoices("options_threshold", "optionsThreshold"),
    )
    min_matches: int = Field(
        default=2, ge=0,
        validation_alias=AliasChoices("min_matches", "minMatches"),
    )
    top_matches: int = Field(
        default=3, ge=1,
        validation_alias=AliasChoices("top_matches", "topMatches"),
    )
    check_across_parts: bool = Field(
        default=False,
        validation_alias=AliasChoices("check_across_parts", "checkAcrossParts"),
    )

    # Top match score at or above which a candidate is flagged as a duplicate
    duplicate_score_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    text_weight: float = Field(default=0.6, ge=0.0, le=1.0)
    options_weight: float = Field(default=0.4, ge=0.0, le=1.0)

    # Scanner yields to the event loop after this many candidates
    yield_every: int = Field(default=10, ge=1)
    option_letters: tuple[str, ...] = ("A", "B", "C", "D", "E")
    excerpt_length: int = Field(default=50, ge=1)

    @field_validator("option_letters", mode="before")
    @classmethod
    def _normalize_letters(cls, value: Any) -> tuple[str, ...]:
        if isinstance(value, str):
            # "ABCDE" and "A, B, C" both mean single letters
            value = [c for c in value if c.isalpha()]
        letters = []
        for letter in value:
            letter = str(letter).strip().upper()
            if letter not in OPTION_LETTERS:
                raise ValueError(f"option letter {letter!r} is not one of {''.join(OPTION_LETTERS)}")
            if letter not in letters:
                letters.append(letter)
        if not letters:
            raise ValueError("option_letters must not be empty")
        return tuple(letters)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "DedupConfig":
        """
        Build a config from a dict.

        Accepts either the deduplication section itself or a whole config
        file dict containing a "deduplication" key.
        """
        if not data:
            return cls()
        section = data.get("deduplication", data)
        return cls.model_validate(section or {})


def resolve_config(config: Optional[DedupConfig] = None, **overrides) -> DedupConfig:
    """Return config (or the defaults) with keyword overrides applied."""
    base = config if config is not None else DedupConfig()
    if not overrides:
        return base
    return DedupConfig.model_validate({**base.model_dump(), **overrides})
