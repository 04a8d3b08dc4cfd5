"""
Memory data models.

Provides:
- MemoryEvent records produced by the extraction pipeline
- Scored results with per-component breakdowns
- Per-call retrieval context and query context
"""

from .schemas import (
    MemoryEvent,
    QueryContext,
    RetrievalContext,
    RetrievalMode,
    RetrievalResult,
    ScoreBreakdown,
    ScoredMemory,
)

__all__ = [
    "MemoryEvent",
    "QueryContext",
    "RetrievalContext",
    "RetrievalMode",
    "RetrievalResult",
    "ScoreBreakdown",
    "ScoredMemory",
]
