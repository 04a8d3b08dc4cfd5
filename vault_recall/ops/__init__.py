"""
Offloaded work for the retrieval pipeline.

Provides the ScoringExecutor, which runs memory scoring in a worker process
with a content-fingerprinted memory cache.
"""

from .scoring_worker import ExecutorBusyError, ScoringExecutor, ScoringWorkerError

__all__ = ["ExecutorBusyError", "ScoringExecutor", "ScoringWorkerError"]
