"""
Operator-driven resolution of duplicate clusters.

ResolutionWorkflow walks the clusters from a scan one at a time. The host UI
picks a strategy for the current cluster (or accepts the suggested one),
resolves it and moves on, or applies one strategy to everything left.
Merging is deferred until finalize(), which assembles the batch to persist.

States:
    pending -> reviewing -> all_resolved -> finalized
    any non-final state -> cancelled
"""

from dataclasses import replace
from enum import Enum
from typing import Any, Optional

from shared.logging import get_logger

from .config import DedupConfig
from .errors import InvalidStrategyError, MergeFailure, WorkflowFinalizeError, WorkflowMisuseError
from .merge import default_manual_selections, merge_questions, normalize_selections
from .models import (
    DuplicateCluster,
    ImportStats,
    MergeStrategy,
    ResolutionDecision,
    ScanResult,
)

log = get_logger("question_dedup", "workflow")


class WorkflowState(str, Enum):
    """Lifecycle of a ResolutionWorkflow."""
    PENDING = "pending"
    REVIEWING = "reviewing"
    ALL_RESOLVED = "all_resolved"
    CANCELLED = "cancelled"
    FINALIZED = "finalized"


def assemble_final_batch(
    non_duplicates: list[Any],
    clusters: list[DuplicateCluster],
    decisions: list[Optional[ResolutionDecision]],
) -> tuple[list[Any], ImportStats]:
    """
    Build the batch to persist from a scan and one decision per cluster.

    keepBoth clusters contribute their candidate unchanged; skip clusters
    and clusters without a decision contribute nothing; every other
    strategy contributes the merged record.

    Raises:
        MergeFailure: With cluster_index set, if any merge fails
    """
    final = list(non_duplicates)
    stats = ImportStats(total=len(non_duplicates) + len(clusters), duplicates=len(clusters))

    for index, cluster in enumerate(clusters):
        decision = decisions[index] if index < len(decisions) else None
        if decision is None or decision.strategy is MergeStrategy.SKIP:
            stats.skipped += 1
            continue

        if decision.strategy is MergeStrategy.KEEP_BOTH or cluster.best_match is None:
            final.append(cluster.candidate)
            stats.kept += 1
            continue

        try:
            merged = merge_questions(
                cluster.best_match.existing,
                cluster.candidate,
                decision.strategy,
                decision.manual_selections,
            )
        except MergeFailure as e:
            raise e.for_cluster(index)

        final.append(merged)
        stats.merged += 1

    stats.imported = len(final)
    return final, stats


class ResolutionWorkflow:
    """
    Sequences per-cluster resolution decisions for one scan.

    The decision list is owned by the workflow and replaced wholesale on
    every change; callers only ever see tuple snapshots.
    """

    def __init__(self, scan: ScanResult, config: Optional[DedupConfig] = None):
        self.config = config or DedupConfig()
        self._non_duplicates = list(scan.non_duplicates)
        self._clusters = list(scan.clusters)
        self._decisions: tuple[ResolutionDecision, ...] = ()
        self._index = 0
        self._state = WorkflowState.PENDING
        self._result: Optional[tuple[list[Any], ImportStats]] = None

    # =========================================================================
    # Introspection
    # =========================================================================

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def clusters(self) -> tuple[DuplicateCluster, ...]:
        return tuple(self._clusters)

    @property
    def decisions(self) -> tuple[ResolutionDecision, ...]:
        return self._decisions

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def current(self) -> Optional[DuplicateCluster]:
        if self._state is not WorkflowState.REVIEWING:
            return None
        return self._clusters[self._index]

    @property
    def current_decision(self) -> Optional[ResolutionDecision]:
        if self._state is not WorkflowState.REVIEWING:
            return None
        return self._decisions[self._index]

    @property
    def remaining(self) -> int:
        return sum(1 for d in self._decisions if not d.resolved)

    @property
    def result(self) -> Optional[tuple[list[Any], ImportStats]]:
        """(final_batch, stats) once finalized, else None."""
        return self._result

    # =========================================================================
    # Operations
    # =========================================================================

    def start(self) -> WorkflowState:
        """Initialize one decision per cluster from its suggested strategy."""
        self._require(WorkflowState.PENDING, "start")
        self._decisions = tuple(
            ResolutionDecision(strategy=cluster.suggested_strategy)
            for cluster in self._clusters
        )
        self._index = 0
        if self._clusters:
            self._transition(WorkflowState.REVIEWING)
        else:
            self._transition(WorkflowState.ALL_RESOLVED)
        return self._state

    def set_strategy_for_current(self, strategy: Any) -> None:
        """Change the strategy of the cluster under review."""
        self._require(WorkflowState.REVIEWING, "set_strategy_for_current")
        strategy = MergeStrategy.parse(strategy)
        if strategy is MergeStrategy.SKIP:
            raise InvalidStrategyError(strategy.value, "Use skip_current() to keep both questions")
        self._replace_current(strategy=strategy)

    def set_manual_selections(self, selections: dict[str, Any]) -> None:
        """
        Choose which fields to take from the candidate.

        Only used when the current strategy is "manual" at resolve time.
        Fields not mentioned keep the existing record's value.

        Raises:
            MergeFailure: If a selection names an unknown field
        """
        self._require(WorkflowState.REVIEWING, "set_manual_selections")
        merged = default_manual_selections(self.config.option_letters)
        merged.update(normalize_selections(selections))
        self._replace_current(manual_selections=merged)

    def resolve_current_and_advance(self) -> WorkflowState:
        """Mark the current cluster resolved and move to the next unresolved one."""
        self._require(WorkflowState.REVIEWING, "resolve_current_and_advance")
        decision = self._decisions[self._index]
        self._replace_current(
            resolved=True,
            manual_selections=self._selections_for(decision.strategy, decision.manual_selections),
        )
        self._advance()
        return self._state

    def apply_strategy_to_all_remaining(self) -> WorkflowState:
        """Resolve the current cluster and every unresolved one after it the same way."""
        self._require(WorkflowState.REVIEWING, "apply_strategy_to_all_remaining")
        decision = self._decisions[self._index]
        selections = self._selections_for(decision.strategy, decision.manual_selections)

        decisions = list(self._decisions)
        for index in range(self._index, len(decisions)):
            if index == self._index or not decisions[index].resolved:
                decisions[index] = ResolutionDecision(
                    strategy=decision.strategy,
                    manual_selections=dict(selections) if selections is not None else None,
                    resolved=True,
                )
        self._decisions = tuple(decisions)

        log.debug(
            "question_dedup.workflow.applied_to_all",
            strategy=decision.strategy.value,
            from_index=self._index,
        )
        self._advance()
        return self._state

    def skip_current(self) -> WorkflowState:
        """Keep both questions for the current cluster and move on."""
        self._require(WorkflowState.REVIEWING, "skip_current")
        self._replace_current(strategy=MergeStrategy.KEEP_BOTH, manual_selections=None, resolved=True)
        self._advance()
        return self._state

    def reopen(self, index: int) -> None:
        """Return to a cluster to change its decision (e.g. after a failed finalize)."""
        self._require(WorkflowState.ALL_RESOLVED, "reopen")
        if not 0 <= index < len(self._clusters):
            raise WorkflowMisuseError(f"No duplicate #{index + 1} to reopen", state=self._state)
        decisions = list(self._decisions)
        decisions[index] = replace(decisions[index], resolved=False)
        self._decisions = tuple(decisions)
        self._index = index
        self._transition(WorkflowState.REVIEWING)

    def cancel(self) -> None:
        """Abort the workflow. No batch is produced."""
        if self._state in (WorkflowState.CANCELLED, WorkflowState.FINALIZED):
            raise WorkflowMisuseError(f"Cannot cancel a {self._state.value} workflow", state=self._state)
        self._transition(WorkflowState.CANCELLED)

    def finalize(self) -> tuple[list[Any], ImportStats]:
        """
        Merge every resolved cluster and assemble the batch to persist.

        Returns:
            (final_batch, stats): non-duplicates followed by one record per
            cluster, in cluster order

        Raises:
            WorkflowFinalizeError: If a merge fails; decisions are kept and
                the workflow stays in all_resolved so the operator can
                reopen that cluster and retry
        """
        self._require(WorkflowState.ALL_RESOLVED, "finalize")
        try:
            final, stats = assemble_final_batch(
                self._non_duplicates, self._clusters, list(self._decisions)
            )
        except MergeFailure as e:
            log.error(
                "question_dedup.workflow.merge_failed",
                cluster_index=e.cluster_index,
                field=e.field,
                error=str(e),
            )
            raise WorkflowFinalizeError(e.cluster_index, e) from e

        self._result = (final, stats)
        self._transition(WorkflowState.FINALIZED)
        log.info("question_dedup.workflow.finalized", **stats.as_dict())
        return final, stats

    # =========================================================================
    # Internals
    # =========================================================================

    def _require(self, allowed, operation: str) -> None:
        if not isinstance(allowed, tuple):
            allowed = (allowed,)
        if self._state not in allowed:
            raise WorkflowMisuseError(
                f"{operation}() is not allowed while the workflow is {self._state.value}",
                state=self._state,
            )

    def _transition(self, state: WorkflowState) -> None:
        log.debug(
            "question_dedup.workflow.transition",
            from_state=self._state.value,
            to_state=state.value,
            index=self._index,
        )
        self._state = state

    def _replace_current(self, **changes) -> None:
        decisions = list(self._decisions)
        decisions[self._index] = replace(decisions[self._index], **changes)
        self._decisions = tuple(decisions)

    def _selections_for(
        self,
        strategy: MergeStrategy,
        selections: Optional[dict[str, bool]],
    ) -> Optional[dict[str, bool]]:
        if strategy is not MergeStrategy.MANUAL:
            return None
        return dict(selections) if selections is not None else default_manual_selections(self.config.option_letters)

    def _advance(self) -> None:
        pending = [i for i, d in enumerate(self._decisions) if not d.resolved]
        if not pending:
            self._transition(WorkflowState.ALL_RESOLVED)
            return
        self._index = pending[0]
