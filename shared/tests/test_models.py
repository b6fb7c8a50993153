"""Tests for question records, strategies and configuration."""

import pytest
from pydantic import ValidationError

from shared.question_dedup import (
    DedupConfig,
    FieldSimilarity,
    InvalidInputError,
    InvalidStrategyError,
    MergeStrategy,
    QuestionRecord,
    coerce_record,
    record_to_dict,
    resolve_config,
)


class TestQuestionRecord:
    """Tests for QuestionRecord coercion and serialization."""

    def test_reads_api_shape(self):
        record = QuestionRecord.model_validate({
            "_id": "abc123",
            "text": "Question?",
            "options": {"a": "First", "B": "Second", "C": ""},
            "correctAnswer": "b",
            "number": 12,
            "year": 2023,
            "part": "1",
            "createdAt": "2024-03-04T13:50:52Z",
            "studyData": None,
            "isPublic": False,
        })

        assert record.id == "abc123"
        assert record.options == {"A": "First", "B": "Second"}
        assert record.correct_answer == "B"
        assert record.number == "12"
        assert record.year == "2023"
        assert record.created_at.year == 2024
        assert record.study_data == []
        assert record.is_public is False

    def test_accepts_plain_id_key(self):
        assert QuestionRecord.model_validate({"id": 7, "text": "Q"}).id == "7"

    def test_options_list_maps_to_letters(self):
        record = QuestionRecord(text="Q", options=["one", "two", "three"])
        assert record.options == {"A": "one", "B": "two", "C": "three"}

    def test_options_beyond_e_are_kept(self):
        record = QuestionRecord(text="Q", options={"F": "sixth", "A": "first"})
        assert list(record.options) == ["A", "F"]

    def test_to_dict_uses_wire_names(self):
        record = QuestionRecord(id="x1", text="Q", correct_answer="C", is_public=True)
        data = record.to_dict()

        assert data["_id"] == "x1"
        assert data["correctAnswer"] == "C"
        assert data["isPublic"] is True
        assert "createdAt" not in data

    def test_extra_fields_survive(self):
        record = QuestionRecord.model_validate({"text": "Q", "source": "ocr", "tags": ["mood"]})
        data = record.to_dict()
        assert data["source"] == "ocr"
        assert data["tags"] == ["mood"]

    def test_has_text(self):
        assert QuestionRecord(text="Q").has_text
        assert not QuestionRecord(text="   ").has_text
        assert not QuestionRecord().has_text

    def test_excerpt(self):
        assert QuestionRecord(text="x" * 80).excerpt(50) == "x" * 50


class TestCoerceRecord:
    """Tests for coerce_record."""

    def test_passes_records_through(self, existing_question):
        assert coerce_record(existing_question) is existing_question

    def test_coerces_dicts(self):
        assert coerce_record({"text": "Q"}).text == "Q"

    @pytest.mark.parametrize("value", ["just text", 42, None, ["list"]])
    def test_rejects_non_mappings(self, value):
        with pytest.raises(InvalidInputError):
            coerce_record(value)

    def test_rejects_malformed_dicts(self):
        with pytest.raises(InvalidInputError):
            coerce_record({"text": "Q", "options": {"Z": "no such letter"}})

    def test_record_to_dict_leaves_other_values(self):
        assert record_to_dict("raw") == "raw"
        assert record_to_dict(QuestionRecord(text="Q"))["text"] == "Q"


class TestMergeStrategy:
    """Tests for MergeStrategy.parse."""

    @pytest.mark.parametrize("name,expected", [
        ("newer", MergeStrategy.NEWER),
        ("metadata", MergeStrategy.METADATA),
        ("manual", MergeStrategy.MANUAL),
        ("keepBoth", MergeStrategy.KEEP_BOTH),
        ("keep_both", MergeStrategy.KEEP_BOTH),
        ("KEEPBOTH", MergeStrategy.KEEP_BOTH),
        ("skip", MergeStrategy.SKIP),
        (MergeStrategy.NEWER, MergeStrategy.NEWER),
    ])
    def test_parse(self, name, expected):
        assert MergeStrategy.parse(name) is expected

    @pytest.mark.parametrize("name", ["overwrite", "", None, 3])
    def test_unknown_raises(self, name):
        with pytest.raises(InvalidStrategyError) as exc_info:
            MergeStrategy.parse(name)
        assert exc_info.value.strategy == name


class TestFieldSimilarity:
    """Tests for FieldSimilarity."""

    def test_options_average_uses_shared_letters_only(self):
        detail = FieldSimilarity(
            text=1.0,
            options={"A": 0.8, "B": 0.4, "C": 0.0},
            shared_options=("A", "B"),
        )
        assert detail.options_average == pytest.approx(0.6)

    def test_options_average_without_shared_options(self):
        assert FieldSimilarity(options={"A": 0.0}).options_average == 0.0

    def test_as_dict(self):
        detail = FieldSimilarity(text=0.5, options={"A": 1.0})
        assert detail.as_dict() == {"text": 0.5, "optionA": 1.0}


class TestDedupConfig:
    """Tests for DedupConfig."""

    def test_defaults(self):
        config = DedupConfig()
        assert config.text_threshold == 0.7
        assert config.options_threshold == 0.6
        assert config.min_matches == 2
        assert config.top_matches == 3
        assert config.check_across_parts is False
        assert config.duplicate_score_threshold == 0.8
        assert config.option_letters == ("A", "B", "C", "D", "E")

    def test_camel_case_aliases(self):
        config = DedupConfig.model_validate({
            "textThreshold": 0.9,
            "optionsThreshold": 0.5,
            "minMatches": 3,
            "topMatches": 1,
            "checkAcrossParts": True,
        })
        assert config.text_threshold == 0.9
        assert config.options_threshold == 0.5
        assert config.min_matches == 3
        assert config.top_matches == 1
        assert config.check_across_parts is True

    def test_is_immutable(self):
        config = DedupConfig()
        with pytest.raises(ValidationError):
            config.text_threshold = 0.1

    @pytest.mark.parametrize("field,value", [
        ("text_threshold", 1.5),
        ("options_threshold", -0.1),
        ("top_matches", 0),
        ("yield_every", 0),
        ("option_letters", ["Z"]),
    ])
    def test_rejects_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            DedupConfig.model_validate({field: value})

    def test_option_letters_from_string(self):
        assert DedupConfig(option_letters="abc").option_letters == ("A", "B", "C")

    def test_from_dict_accepts_whole_file(self):
        config = DedupConfig.from_dict({"deduplication": {"min_matches": 4}, "logging": {}})
        assert config.min_matches == 4

    def test_from_dict_empty(self):
        assert DedupConfig.from_dict(None) == DedupConfig()

    def test_resolve_config_overrides(self):
        config = resolve_config(DedupConfig(min_matches=3), text_threshold=0.8)
        assert config.min_matches == 3
        assert config.text_threshold == 0.8
