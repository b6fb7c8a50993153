"""
Exceptions raised by the question deduplication engine.

Scan-phase problems (bad records, comparison failures) are recovered where
they happen; merge and workflow problems are raised to the caller with
enough context to retry a single cluster.
"""

from typing import Optional


class DedupError(Exception):
    """Base class for deduplication errors."""
    pass


class InvalidInputError(DedupError):
    """Raised when a record collection is not a list of question records."""

    def __init__(self, message: str, role: str = "records"):
        super().__init__(message)
        self.role = role


class ComparisonFailure(DedupError):
    """Raised when two field values cannot be compared as text."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class MergeFailure(DedupError):
    """Raised when a merge cannot produce a record."""

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        cluster_index: Optional[int] = None,
    ):
        super().__init__(message)
        self.field = field
        self.cluster_index = cluster_index

    def for_cluster(self, cluster_index: int) -> "MergeFailure":
        """Attach the index of the cluster being merged."""
        self.cluster_index = cluster_index
        return self


class InvalidStrategyError(MergeFailure):
    """Raised for a merge strategy name that is not recognised."""

    def __init__(self, strategy, message: Optional[str] = None):
        super().__init__(message or f"Unknown merge strategy: {strategy!r}")
        self.strategy = strategy


class WorkflowMisuseError(DedupError):
    """Raised when a workflow operation is invoked in the wrong state."""

    def __init__(self, message: str, state=None):
        super().__init__(message)
        self.state = state


class WorkflowFinalizeError(DedupError):
    """Raised when finalizing a workflow fails on one cluster."""

    def __init__(self, cluster_index: int, cause: MergeFailure):
        super().__init__(f"Merge failed for duplicate #{cluster_index + 1}: {cause}")
        self.cluster_index = cluster_index
        self.cause = cause


class ScanCancelledError(DedupError):
    """Raised when a scan is cancelled at a yield point."""

    def __init__(self, processed: int, total: int):
        super().__init__(f"Scan cancelled after {processed} of {total} candidates")
        self.processed = processed
        self.total = total
