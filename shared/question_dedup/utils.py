"""
Utility functions for question deduplication.

Contains:
- Configuration loading
- Factory functions
- Batch helpers for non-interactive imports
"""

import asyncio
from pathlib import Path
from typing import Any, Optional

from shared.logging import get_logger

from .config import DedupConfig
from .models import DuplicateCluster, ImportStats, MergeStrategy, ResolutionDecision
from .scanner import DuplicateScanner, ProgressCallback
from .workflow import assemble_final_batch

log = get_logger("question_dedup", "utils")

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent.parent / "config.yaml"


def load_dedup_config(config_path: Optional[str] = None) -> dict:
    """
    Load the deduplication section of a YAML config file.

    Args:
        config_path: Path to config file. If None, uses config.yaml at the
            repository root

    Returns:
        Deduplication config dict ({} if the file is missing or invalid)
    """
    import yaml

    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            full_config = yaml.safe_load(f) or {}
        if not isinstance(full_config, dict):
            raise yaml.YAMLError("top level of config must be a mapping")
        return full_config.get("deduplication") or {}
    except (FileNotFoundError, yaml.YAMLError) as e:
        log.warning(
            "question_dedup.config.load_failed",
            config_path=str(config_path),
            error=str(e),
        )
        return {}


def get_dedup_config(config_path: Optional[str] = None, **overrides) -> DedupConfig:
    """Build a DedupConfig from the YAML file with keyword overrides on top."""
    section = load_dedup_config(config_path)
    return DedupConfig.from_dict({**section, **overrides})


def get_scanner(config: Optional[DedupConfig] = None) -> DuplicateScanner:
    """
    Factory function to create a DuplicateScanner.

    Configuration is read from the repository config.yaml if not provided.
    """
    if config is None:
        config = get_dedup_config()
    return DuplicateScanner(config)


# =============================================================================
# Convenience Functions
# =============================================================================


def check_duplicates(
    candidates: Any,
    existing: Any,
    config: Optional[DedupConfig] = None,
) -> tuple[int, list[DuplicateCluster]]:
    """
    Quick one-shot duplicate summary.

    Returns:
        (duplicate_count, clusters)
    """
    result = DuplicateScanner(config).scan_sync(candidates, existing)
    return result.duplicate_count, result.clusters


def generate_bulk_resolution(
    clusters: list[DuplicateCluster],
    strategy: Any = None,
) -> list[ResolutionDecision]:
    """
    One resolved decision per cluster.

    Args:
        clusters: Clusters from a scan
        strategy: Strategy for every cluster; None uses each cluster's
            suggested strategy

    Raises:
        InvalidStrategyError: If strategy is not recognised
    """
    if strategy is not None:
        strategy = MergeStrategy.parse(strategy)
    return [
        ResolutionDecision(
            strategy=strategy if strategy is not None else cluster.suggested_strategy,
            resolved=True,
        )
        for cluster in clusters
    ]


def resolve_duplicates(
    clusters: list[DuplicateCluster],
    decisions: list[Optional[ResolutionDecision]],
) -> list[Any]:
    """
    Apply decisions to clusters without an interactive workflow.

    Clusters with no decision, or with "skip", are dropped.

    Raises:
        MergeFailure: With cluster_index set, if a merge fails
    """
    records, _ = assemble_final_batch([], clusters, decisions)
    return records


async def process_import(
    candidates: Any,
    existing: Any,
    config: Optional[DedupConfig] = None,
    strategy: Any = None,
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> tuple[list[Any], ImportStats]:
    """
    Scan a batch and resolve every duplicate with one strategy.

    Args:
        candidates: Incoming questions
        existing: The existing corpus
        config: Detection config (defaults if None)
        strategy: Strategy for all duplicates; None uses each suggestion
        on_progress: Scan progress callback (0-100)
        cancel_event: Set to cancel the scan

    Returns:
        (final_batch, stats) ready for bulk insert
    """
    scanner = DuplicateScanner(config)
    result = await scanner.scan(
        candidates, existing, on_progress=on_progress, cancel_event=cancel_event
    )
    decisions = generate_bulk_resolution(result.clusters, strategy)
    final, stats = assemble_final_batch(result.non_duplicates, result.clusters, decisions)

    log.info("question_dedup.import.processed", **stats.as_dict())
    return final, stats
