"""
Structured logging for the question import tools.

Every module gets its logger through get_logger(component, name) and logs
dotted event names with keyword context:

    log = get_logger("question_dedup", "scanner")
    log.info("question_dedup.scan.completed", candidates=100, duplicates=7)

Output goes through the standard library logging module, so pytest's caplog
and any host application handlers see the events.
"""

import logging
import sys

import structlog
from structlog.dev import ConsoleRenderer
from structlog.processors import JSONRenderer
from structlog.stdlib import LoggerFactory, add_log_level, add_logger_name


def configure_logging(level: str = "INFO", json_format: bool = False) -> None:
    """
    Configure structlog on top of stdlib logging.

    Safe to call more than once; the last call wins.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ...)
        json_format: Render one JSON object per line instead of console output
    """
    level_no = logging.getLevelName(level.upper())
    if not isinstance(level_no, int):
        level_no = logging.INFO

    renderer = JSONRenderer() if json_format else ConsoleRenderer(colors=False)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if getattr(existing, "_question_dedup_handler", False):
            root.removeHandler(existing)
    handler._question_dedup_handler = True
    root.addHandler(handler)
    root.setLevel(level_no)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            add_logger_name,
            add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(component: str, name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger named "<component>.<name>".

    Args:
        component: Top-level area, e.g. "question_dedup"
        name: Module within the component, e.g. "scanner"
    """
    return structlog.get_logger(f"{component}.{name}")
