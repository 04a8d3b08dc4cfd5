"""
Embedding providers.

Provides:
- EmbeddingProvider interface (embed never raises)
- sentence-transformers and Ollama backends
- Registry keyed by the ``embedding.source`` setting
- Bounded LRU cache wrapper
"""

from .base import DEFAULT_CHUNK_SIZE, EmbeddingProvider
from .cache import CachingEmbedder
from .ollama import OllamaEmbedder
from .registry import (
    EMBEDDING_PROVIDERS,
    create_embedding_provider,
    generate_embeddings_for_memories,
)
from .sentence_transformer import SENTENCE_TRANSFORMER_MODELS, SentenceTransformerEmbedder

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "EmbeddingProvider",
    "CachingEmbedder",
    "OllamaEmbedder",
    "EMBEDDING_PROVIDERS",
    "create_embedding_provider",
    "generate_embeddings_for_memories",
    "SENTENCE_TRANSFORMER_MODELS",
    "SentenceTransformerEmbedder",
]
