"""Shared fixtures for question deduplication tests."""

import pytest

from shared.question_dedup import (
    DedupConfig,
    DuplicateCluster,
    FieldSimilarity,
    MatchCandidate,
    MergeStrategy,
    QuestionRecord,
    ScanResult,
    SimilarityResult,
)

LITHIUM_TEXT = "What is the mechanism of action of lithium?"
NERVE_TEXT = "Which cranial nerve innervates the lateral rectus muscle?"


@pytest.fixture
def config():
    """Default detection config."""
    return DedupConfig()


@pytest.fixture
def existing_question():
    """A question already in the bank."""
    return QuestionRecord(
        id="q-100",
        text=LITHIUM_TEXT,
        options={
            "A": "Inhibition of inositol monophosphatase",
            "B": "Blockade of dopamine D2 receptors",
            "C": "Serotonin reuptake inhibition",
        },
        correct_answer="A",
        explanation="Lithium depletes inositol.",
        category="Psychopharmacology",
        part="1",
        year="2023",
        number="5",
        created_at="2024-01-01T00:00:00Z",
        creator="user-1",
        study_data=[{"easeFactor": 2.5, "interval": 3}],
        is_public=True,
    )


@pytest.fixture
def candidate_question():
    """An incoming near-copy of existing_question with reworded options."""
    return QuestionRecord(
        text=LITHIUM_TEXT,
        options={
            "A": "Inhibition of inositol monophosphatase enzyme",
            "B": "Blockade of dopamine D2 receptors.",
        },
        correct_answer="A",
        explanation="Inositol depletion hypothesis.",
        category="Pharmacology",
        part="1",
        year="2023",
        number="5",
        creator="user-2",
    )


@pytest.fixture
def unrelated_question():
    """An incoming question about something else entirely."""
    return QuestionRecord(
        text=NERVE_TEXT,
        options={"A": "Abducens", "B": "Trochlear"},
        correct_answer="A",
        part="1",
        year="2023",
    )


def make_cluster(candidate, existing, strategy=MergeStrategy.METADATA, score=0.95):
    """Build a cluster directly, without running the scorer."""
    similarity = SimilarityResult(
        score=score,
        detail=FieldSimilarity(text=score),
        reasons=["Question text is 95% similar"],
        match_count=3,
        merge_strategy=strategy,
    )
    return DuplicateCluster(
        candidate=candidate,
        matches=[MatchCandidate(existing=existing, similarity=similarity)],
        reasons=[f'Matched with question "{existing.text[:50]}..."'],
    )


@pytest.fixture
def three_cluster_scan():
    """A scan with one non-duplicate and three duplicate clusters."""
    clusters = []
    for i, strategy in enumerate([MergeStrategy.METADATA, MergeStrategy.NEWER, MergeStrategy.METADATA]):
        existing = QuestionRecord(
            id=f"e{i}",
            text=f"Existing question {i}",
            options={"A": f"old A{i}", "B": f"old B{i}"},
            part="1",
            year="2022",
            number=str(i),
        )
        candidate = QuestionRecord(
            text=f"Incoming question {i}",
            options={"A": f"new A{i}", "B": f"new B{i}"},
            part="2",
            year="2023",
            number=str(i + 10),
        )
        clusters.append(make_cluster(candidate, existing, strategy))

    fresh = QuestionRecord(text="A brand new question", part="1", year="2023")
    return ScanResult(non_duplicates=[fresh], clusters=clusters)
