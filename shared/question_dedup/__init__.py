"""
Duplicate detection and merging for imported PRITE questions.

When a batch of questions is imported (OCR, pasted text, CSV), each one is
checked against the existing question bank before anything is saved:

1. Field comparison - question text and each answer option (bigram Dice)
2. Scoring - count independent signals (text, options, question number,
   exam year/part) and weight text 0.6 / options 0.4
3. Batch scan - rank the best matches per candidate and split the batch
   into duplicate clusters and non-duplicates
4. Resolution - newer / metadata / manual / keepBoth per cluster, either
   interactively or in bulk, then assemble the batch to persist

Usage:
    from shared.question_dedup import DuplicateScanner, ResolutionWorkflow

    scanner = DuplicateScanner()
    scan = await scanner.scan(candidates, existing, on_progress=print)

    workflow = ResolutionWorkflow(scan)
    workflow.start()
    while workflow.state is WorkflowState.REVIEWING:
        workflow.resolve_current_and_advance()
    final_batch, stats = workflow.finalize()
"""

# Models
from .models import (
    QuestionRecord,
    MergeStrategy,
    FieldSimilarity,
    SimilarityResult,
    MatchCandidate,
    DuplicateCluster,
    ScanResult,
    ResolutionDecision,
    ImportStats,
    PairAssessment,
    coerce_record,
    record_to_dict,
)

# Configuration
from .config import DedupConfig, OPTION_LETTERS, resolve_config

# Errors
from .errors import (
    DedupError,
    InvalidInputError,
    ComparisonFailure,
    MergeFailure,
    InvalidStrategyError,
    WorkflowMisuseError,
    WorkflowFinalizeError,
    ScanCancelledError,
)

# Similarity and scoring
from .text_processing import dice_coefficient, string_similarity
from .comparator import compare_fields
from .scorer import score_pair, assess_pair, suggest_merge_strategy

# Scanning
from .scanner import DuplicateScanner, ProgressCallback, validate_records

# Merging and resolution
from .merge import merge_questions, default_manual_selections
from .workflow import ResolutionWorkflow, WorkflowState, assemble_final_batch

# Utility functions
from .utils import (
    load_dedup_config,
    get_dedup_config,
    get_scanner,
    check_duplicates,
    generate_bulk_resolution,
    resolve_duplicates,
    process_import,
)

__all__ = [
    # Models
    "QuestionRecord",
    "MergeStrategy",
    "FieldSimilarity",
    "SimilarityResult",
    "MatchCandidate",
    "DuplicateCluster",
    "ScanResult",
    "ResolutionDecision",
    "ImportStats",
    "PairAssessment",
    "coerce_record",
    "record_to_dict",
    # Configuration
    "DedupConfig",
    "OPTION_LETTERS",
    "resolve_config",
    # Errors
    "DedupError",
    "InvalidInputError",
    "ComparisonFailure",
    "MergeFailure",
    "InvalidStrategyError",
    "WorkflowMisuseError",
    "WorkflowFinalizeError",
    "ScanCancelledError",
    # Similarity and scoring
    "dice_coefficient",
    "string_similarity",
    "compare_fields",
    "score_pair",
    "assess_pair",
    "suggest_merge_strategy",
    # Scanning
    "DuplicateScanner",
    "ProgressCallback",
    "validate_records",
    # Merging and resolution
    "merge_questions",
    "default_manual_selections",
    "ResolutionWorkflow",
    "WorkflowState",
    "assemble_final_batch",
    # Utils
    "load_dedup_config",
    "get_dedup_config",
    "get_scanner",
    "check_duplicates",
    "generate_bulk_resolution",
    "resolve_duplicates",
    "process_import",
]
