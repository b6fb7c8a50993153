"""
Batch duplicate scanner.

Runs every incoming question against the existing corpus and partitions the
batch into duplicate clusters and non-duplicates. The async scan yields to
the event loop every few candidates so a host UI or server stays
responsive, reports progress as a percentage, and can be cancelled through
an asyncio.Event checked at each yield point.
"""

import asyncio
import time
from collections.abc import Iterable, Mapping
from typing import Any, Callable, Optional

from pydantic import BaseModel

from shared.logging import get_logger

from .config import DedupConfig
from .errors import InvalidInputError, ScanCancelledError
from .models import (
    DuplicateCluster,
    MatchCandidate,
    QuestionRecord,
    ScanResult,
    coerce_record,
)
from .scorer import score_pair

log = get_logger("question_dedup", "scanner")

# Called with an integer percentage (0-100) after each candidate
ProgressCallback = Callable[[int], None]


def validate_records(records: Any, role: str = "records") -> list:
    """
    Check that a record collection is list-like.

    None is treated as an empty list.

    Raises:
        InvalidInputError: If records is a string, a mapping, a single
            record, or not iterable
    """
    if records is None:
        return []
    if isinstance(records, (list, tuple)):
        return list(records)
    if isinstance(records, (str, bytes, Mapping, BaseModel)) or not isinstance(records, Iterable):
        raise InvalidInputError(
            f"Expected a list of questions for {role}, got {type(records).__name__}",
            role=role,
        )
    return list(records)


class DuplicateScanner:
    """
    Finds duplicates of incoming questions in an existing corpus.

    The corpus is read-only during a scan. Given the same inputs and
    config, output order and scores are identical across runs: matches are
    sorted by score with ties kept in corpus order.
    """

    def __init__(self, config: Optional[DedupConfig] = None):
        self.config = config or DedupConfig()

    def prepare_corpus(self, existing: Any) -> list[QuestionRecord]:
        """
        Coerce the existing corpus to records.

        A corpus that is not a list is treated as empty (every candidate
        passes through); malformed entries are dropped with a warning.
        """
        try:
            items = validate_records(existing, role="existing")
        except InvalidInputError as e:
            log.warning("question_dedup.corpus.invalid", error=str(e))
            return []

        corpus = []
        for index, item in enumerate(items):
            try:
                corpus.append(coerce_record(item))
            except InvalidInputError as e:
                log.warning(
                    "question_dedup.corpus.malformed_record",
                    index=index,
                    error=str(e),
                )
        return corpus

    def find_matches(
        self,
        candidate: QuestionRecord,
        corpus: list[QuestionRecord],
    ) -> list[MatchCandidate]:
        """
        Ranked matches for one candidate.

        Skips the candidate's own record (same id), records with no text
        and, unless check_across_parts is set, records from a different
        exam part.
        Keeps pairs with at least min_matches signals, best top_matches.
        """
        config = self.config
        matches = []

        for existing in corpus:
            if not existing.has_text:
                continue
            if candidate.id and existing.id == candidate.id:
                continue
            if (
                not config.check_across_parts
                and candidate.part and existing.part
                and candidate.part != existing.part
            ):
                continue

            similarity = score_pair(candidate, existing, config)
            if similarity.match_count >= config.min_matches:
                matches.append(MatchCandidate(existing=existing, similarity=similarity))

        # Stable sort keeps corpus order for equal scores
        matches.sort(key=lambda m: m.similarity.score, reverse=True)
        return matches[:config.top_matches]

    def check_candidate(
        self,
        candidate: QuestionRecord,
        corpus: list[QuestionRecord],
    ) -> Optional[DuplicateCluster]:
        """Return a DuplicateCluster if the candidate duplicates the corpus, else None."""
        if not candidate.has_text:
            return None

        matches = self.find_matches(candidate, corpus)
        if not matches or matches[0].score < self.config.duplicate_score_threshold:
            return None

        best = matches[0]
        excerpt = best.existing.excerpt(self.config.excerpt_length)
        reasons = [f'Matched with question "{excerpt}..."', *best.similarity.reasons]

        log.debug(
            "question_dedup.scan.duplicate_found",
            candidate_id=candidate.id,
            duplicate_of=best.existing.id,
            score=round(best.score, 3),
            match_count=best.similarity.match_count,
        )
        return DuplicateCluster(candidate=candidate, matches=matches, reasons=reasons)

    def _route(self, item: Any, corpus: list[QuestionRecord], result: ScanResult) -> None:
        """Put one candidate into the right bucket of the result."""
        try:
            candidate = coerce_record(item)
        except InvalidInputError as e:
            log.warning("question_dedup.scan.malformed_candidate", error=str(e))
            result.non_duplicates.append(item)
            result.skipped += 1
            return

        if not candidate.has_text:
            result.non_duplicates.append(candidate)
            result.skipped += 1
            return

        cluster = self.check_candidate(candidate, corpus)
        if cluster is None:
            result.non_duplicates.append(candidate)
        else:
            result.clusters.append(cluster)

    async def scan(
        self,
        candidates: Any,
        existing: Any,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ScanResult:
        """
        Scan a batch of candidates against the existing corpus.

        Args:
            candidates: Incoming questions (records or dicts)
            existing: The existing corpus (records or dicts)
            on_progress: Called with 0-100 after each candidate
            cancel_event: Set it to stop the scan at the next yield point

        Returns:
            ScanResult; every candidate lands in exactly one bucket

        Raises:
            ScanCancelledError: If cancel_event is set during the scan
        """
        try:
            items = validate_records(candidates, role="candidates")
        except InvalidInputError as e:
            if on_progress is not None:
                on_progress(100)
            return self._pass_through(candidates, e)
        corpus = self.prepare_corpus(existing)
        result = ScanResult()
        total = len(items)
        start_time = time.time()

        log.info(
            "question_dedup.scan.started",
            candidates=total,
            corpus=len(corpus),
        )

        if cancel_event is not None and cancel_event.is_set():
            raise ScanCancelledError(0, total)

        for index, item in enumerate(items):
            self._route(item, corpus, result)

            if on_progress is not None:
                on_progress(_progress(index + 1, total))

            if (index + 1) % self.config.yield_every == 0:
                await asyncio.sleep(0)
                if cancel_event is not None and cancel_event.is_set():
                    log.info(
                        "question_dedup.scan.cancelled",
                        processed=index + 1,
                        candidates=total,
                    )
                    raise ScanCancelledError(index + 1, total)

        if total == 0 and on_progress is not None:
            on_progress(100)

        self._log_completed(result, start_time)
        return result

    def scan_sync(self, candidates: Any, existing: Any) -> ScanResult:
        """Scan without yielding, for scripts and batch jobs."""
        try:
            items = validate_records(candidates, role="candidates")
        except InvalidInputError as e:
            return self._pass_through(candidates, e)
        corpus = self.prepare_corpus(existing)
        result = ScanResult()
        start_time = time.time()

        for item in items:
            self._route(item, corpus, result)

        self._log_completed(result, start_time)
        return result

    def _pass_through(self, candidates: Any, error: InvalidInputError) -> ScanResult:
        """A batch that is not a list is returned untouched as one skipped item."""
        log.warning("question_dedup.scan.invalid_candidates", error=str(error))
        return ScanResult(non_duplicates=[candidates], skipped=1)

    def _log_completed(self, result: ScanResult, start_time: float) -> None:
        log.info(
            "question_dedup.scan.completed",
            candidates=result.total,
            duplicates=result.duplicate_count,
            non_duplicates=len(result.non_duplicates),
            skipped=result.skipped,
            time_ms=round((time.time() - start_time) * 1000, 2),
        )


def _progress(done: int, total: int) -> int:
    return int(done * 100 / total + 0.5) if total else 100
