"""
Embedding provider registry and batch backfill.

``embedding.source`` selects the provider: a sentence-transformers model key
or ``"ollama"``. Unknown sources fall back to the default model.
"""
from __future__ import annotations
from typing import Callable, Dict, List, Optional, Sequence
import asyncio
import logging

from ..config.settings import EmbeddingSettings
from ..memory.schemas import MemoryEvent
from .base import EmbeddingProvider
from .cache import CachingEmbedder
from .ollama import OllamaEmbedder
from .sentence_transformer import SENTENCE_TRANSFORMER_MODELS, SentenceTransformerEmbedder

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "multilingual-e5-small"


def _sentence_transformer_factory(model_key: str) -> Callable[[EmbeddingSettings], EmbeddingProvider]:
    def factory(settings: EmbeddingSettings) -> EmbeddingProvider:
        return SentenceTransformerEmbedder(model_key, device=settings.device)
    return factory


def _ollama_factory(settings: EmbeddingSettings) -> EmbeddingProvider:
    return OllamaEmbedder(base_url=settings.ollama_url, model=settings.model)


EMBEDDING_PROVIDERS: Dict[str, Callable[[EmbeddingSettings], EmbeddingProvider]] = {
    key: _sentence_transformer_factory(key) for key in SENTENCE_TRANSFORMER_MODELS
}
EMBEDDING_PROVIDERS["ollama"] = _ollama_factory


def create_embedding_provider(
    settings: Optional[EmbeddingSettings] = None,
    cached: bool = True,
) -> EmbeddingProvider:
    """
    Build the embedding provider named by ``settings.source``.

    Args:
        settings: Embedding settings
        cached: Wrap the provider in a CachingEmbedder of ``settings.cache_size``

    Returns:
        Provider instance (possibly disabled, never None)
    """
    settings = settings or EmbeddingSettings()
    source = settings.source or DEFAULT_SOURCE
    factory = EMBEDDING_PROVIDERS.get(source)
    if factory is None:
        logger.warning(f"Unknown embedding source '{source}', using {DEFAULT_SOURCE}")
        factory = EMBEDDING_PROVIDERS[DEFAULT_SOURCE]

    provider = factory(settings)
    if cached:
        provider = CachingEmbedder(provider, max_size=settings.cache_size)
    return provider


async def generate_embeddings_for_memories(
    memories: Sequence[MemoryEvent],
    provider: Optional[EmbeddingProvider],
    batch_size: int = 5,
) -> int:
    """
    Embed memories that have a summary but no embedding yet.

    Calls run ``batch_size`` at a time, which keeps local Ollama instances
    from being flooded. Embeddings are attached in place; persisting them is
    the caller's job.

    Args:
        memories: Memories to backfill
        provider: Embedding provider
        batch_size: Concurrent calls per batch

    Returns:
        Number of memories that received an embedding
    """
    if provider is None or not provider.is_enabled():
        return 0

    pending: List[MemoryEvent] = [m for m in memories if m.summary and m.embedding is None]
    if not pending:
        return 0

    batch_size = max(1, batch_size)
    count = 0
    for start in range(0, len(pending), batch_size):
        batch = pending[start:start + batch_size]
        vectors = await asyncio.gather(
            *(asyncio.to_thread(provider.embed_document, m.summary) for m in batch)
        )
        for memory, vector in zip(batch, vectors):
            if vector and memory.attach_embedding(vector):
                count += 1

    logger.info(f"Attached embeddings to {count}/{len(pending)} memories")
    return count
