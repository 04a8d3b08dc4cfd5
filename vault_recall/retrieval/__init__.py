"""
Memory retrieval pipeline.

Provides:
- Query context extraction (entities, enriched queries, boosted BM25 tokens)
- Composite scoring (forgetfulness curve + capped vector/BM25 bonuses)
- Token budgeting and the two-stage MemoryRetriever
- POV filtering and prompt formatting of the final selection
"""

from .budget import estimate_tokens, memory_tokens, slice_to_token_budget
from .formatting import format_context_for_injection
from .orchestrator import MemoryRetriever, create_retriever, smart_target
from .pov import filter_memories_by_pov
from .query_context import (
    build_bm25_tokens,
    build_embedding_query,
    extract_entities_from_text,
    extract_query_context,
    parse_recent_messages,
)
from .scoring import calculate_score, forgetfulness_base, score_memories

__all__ = [
    "estimate_tokens",
    "memory_tokens",
    "slice_to_token_budget",
    "format_context_for_injection",
    "MemoryRetriever",
    "create_retriever",
    "smart_target",
    "filter_memories_by_pov",
    "build_bm25_tokens",
    "build_embedding_query",
    "extract_entities_from_text",
    "extract_query_context",
    "parse_recent_messages",
    "calculate_score",
    "forgetfulness_base",
    "score_memories",
]
