"""Lexical and vector scoring primitives."""

from .bm25 import (
    BM25_B,
    BM25_K1,
    STOP_WORDS,
    MemoryBM25,
    batch_bm25_scores,
    build_memory_index,
    tokenize,
)
from .vectors import cosine_similarity

__all__ = [
    "BM25_B",
    "BM25_K1",
    "STOP_WORDS",
    "MemoryBM25",
    "batch_bm25_scores",
    "build_memory_index",
    "tokenize",
    "cosine_similarity",
]
