"""
Structured step logging for the retrieval pipeline.
"""

import logging
import time
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import structlog


structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)
logger = structlog.get_logger("vault_recall.telemetry")


def configure_logging(level: int = logging.INFO) -> None:
    """Route stdlib and structlog output to stderr at ``level``."""
    logging.basicConfig(level=level, format="%(message)s")


def new_run_id() -> str:
    """Generate a new unique run ID."""
    return str(uuid.uuid4())


def log_step(
    run_id: str,
    step_name: str,
    ms: float,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Log one pipeline step with timing.

    Args:
        run_id: Retrieval call identifier
        step_name: Step name (e.g., "embed", "stage1", "stage2")
        ms: Duration in milliseconds
        extra: Optional extra fields to log
    """
    logger.info(
        "step_executed",
        run_id=run_id,
        step=step_name,
        duration_ms=round(ms, 3),
        **(extra or {}),
    )


@contextmanager
def timed_step(run_id: str, step_name: str, extra: Optional[Dict[str, Any]] = None) -> Iterator[Dict[str, Any]]:
    """
    Time a block and log it with ``log_step``.

    The yielded dict is merged into the log record, so the block can add
    fields it only knows at the end (counts, modes).
    """
    fields: Dict[str, Any] = dict(extra or {})
    start = time.perf_counter()
    try:
        yield fields
    finally:
        log_step(run_id, step_name, (time.perf_counter() - start) * 1000, fields)
