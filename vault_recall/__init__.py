"""
vault_recall - memory retrieval for long-running conversational agents.

Picks the smallest relevant subset of recorded memory events to inject into
the next generation request, under a token budget.
"""

__version__ = "0.4.0"

from .config import Settings
from .memory import MemoryEvent, RetrievalContext, RetrievalResult
from .retrieval import MemoryRetriever, create_retriever

__all__ = [
    "Settings",
    "MemoryEvent",
    "RetrievalContext",
    "RetrievalResult",
    "MemoryRetriever",
    "create_retriever",
]
