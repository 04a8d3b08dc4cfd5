"""
Shared fixtures for retrieval unit tests.
"""
import time
from typing import List, Optional
from unittest.mock import MagicMock

import pytest

from vault_recall.embeddings.base import EmbeddingProvider
from vault_recall.ops.scoring_worker import ScoringExecutor
from vault_recall.retrieval.scoring import score_memories


class FixedEmbedder(EmbeddingProvider):
    """Embedder returning a preset vector per exact text, else a default."""

    provider_id = "fixed"
    optimal_chunk_size = 500

    def __init__(self, default: Optional[List[float]] = None, table: Optional[dict] = None, enabled: bool = True):
        self.default = default
        self.table = table or {}
        self.enabled = enabled
        self.calls: List[str] = []

    def is_enabled(self) -> bool:
        return self.enabled

    def embed(self, text: str) -> Optional[List[float]]:
        self.calls.append(text)
        return self.table.get(text, self.default)


@pytest.fixture
def fixed_embedder():
    """Embedder whose every query maps to the x axis."""
    return FixedEmbedder(default=[1.0, 0.0, 0.0])


@pytest.fixture
def mock_reranker():
    """Reranker mock; set ``rerank.return_value`` or ``side_effect`` per test."""
    reranker = MagicMock()
    reranker.provider_id = "mock"
    return reranker


@pytest.fixture
def sample_summaries():
    """Short event summaries for lexical tests."""
    return [
        "Elena found a hidden passage beneath the old castle.",
        "Marcus sold his horse at the market in Rivergate.",
        "A storm flooded the lower district overnight.",
        "Elena and Marcus argued about the castle map.",
        "The innkeeper refused to serve the soldiers.",
    ]


@pytest.fixture
def embedder_cls():
    """The FixedEmbedder class, for tests that need custom tables."""
    return FixedEmbedder


class InlineExecutor(ScoringExecutor):
    """ScoringExecutor that scores in the calling thread, after an optional delay."""

    def __init__(self, delay: float = 0.0):
        super().__init__()
        self.delay = delay

    def _score(self, memories, query_embedding, chat_length, query_tokens, changed, limit, constants, settings):
        self.requests += 1
        time.sleep(self.delay)
        scored = score_memories(
            memories,
            query_embedding,
            chat_length,
            query_tokens=query_tokens or [],
            constants=constants,
            settings=settings,
        )
        return scored if limit is None else scored[:limit]


@pytest.fixture
def inline_executor_cls():
    """The InlineExecutor class; no worker process is started."""
    return InlineExecutor
