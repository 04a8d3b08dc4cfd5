"""LLM-assisted memory selection: prompts, reply parsing, rerank providers."""

from .prompts import build_selection_messages, format_numbered_memories
from .rerankers import RERANKERS, OllamaReranker, OpenAIReranker, Reranker, create_reranker
from .selection_parser import (
    RetrievalSelection,
    SelectionParseError,
    parse_selection,
    resolve_selection,
)

__all__ = [
    "build_selection_messages",
    "format_numbered_memories",
    "RERANKERS",
    "OllamaReranker",
    "OpenAIReranker",
    "Reranker",
    "create_reranker",
    "RetrievalSelection",
    "SelectionParseError",
    "parse_selection",
    "resolve_selection",
]
