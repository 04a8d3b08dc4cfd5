"""
In-memory LRU cache in front of an embedding provider.

Keys are content hashes of (framing, provider, text). Only successful
embeddings are cached, so a transient provider failure is retried next call.
"""
from __future__ import annotations
from collections import OrderedDict
from typing import Optional
import threading

from ..persist.hashing import stable_hash
from .base import EmbeddingProvider, Vector


class CachingEmbedder(EmbeddingProvider):
    """
    Bounded LRU wrapper for any EmbeddingProvider.

    Reads promote an entry to most-recently-used; inserting past ``max_size``
    evicts the least-recently-used entry.

    Usage:
        >>> embedder = CachingEmbedder(OllamaEmbedder(url, "nomic-embed-text"), max_size=500)
        >>> embedder.embed("Elena at the castle")  # miss, calls Ollama
        >>> embedder.embed("Elena at the castle")  # hit
    """

    def __init__(self, provider: EmbeddingProvider, max_size: int = 500):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.provider = provider
        self.max_size = max_size
        self.cache: "OrderedDict[str, Vector]" = OrderedDict()
        self._lock = threading.Lock()

        # Track cache hits/misses
        self.hits = 0
        self.misses = 0

    @property
    def provider_id(self) -> str:  # type: ignore[override]
        return self.provider.provider_id

    @property
    def optimal_chunk_size(self) -> int:  # type: ignore[override]
        return self.provider.optimal_chunk_size

    def is_enabled(self) -> bool:
        return self.provider.is_enabled()

    def status(self) -> str:
        return self.provider.status()

    def _cache_key(self, kind: str, text: str) -> str:
        return stable_hash({"kind": kind, "provider": self.provider.provider_id, "text": text})

    def _get(self, key: str) -> Optional[Vector]:
        with self._lock:
            vector = self.cache.get(key)
            if vector is None:
                self.misses += 1
                return None
            self.cache.move_to_end(key)
            self.hits += 1
            return vector

    def _put(self, key: str, vector: Vector) -> None:
        with self._lock:
            self.cache[key] = vector
            self.cache.move_to_end(key)
            while len(self.cache) > self.max_size:
                self.cache.popitem(last=False)

    def _cached(self, kind: str, text: str, compute) -> Optional[Vector]:
        if not text:
            return compute(text)
        key = self._cache_key(kind, text)
        vector = self._get(key)
        if vector is not None:
            return list(vector)
        vector = compute(text)
        if vector:
            self._put(key, list(vector))
        return vector

    def embed(self, text: str) -> Optional[Vector]:
        return self._cached("query", text, self.provider.embed)

    def embed_document(self, text: str) -> Optional[Vector]:
        return self._cached("document", text, self.provider.embed_document)

    def __len__(self) -> int:
        return len(self.cache)

    def clear(self) -> None:
        with self._lock:
            self.cache.clear()

    def get_stats(self) -> dict:
        """Get cache statistics."""
        total = self.hits + self.misses
        return {
            "hits": self.hits,
            "misses": self.misses,
            "total": total,
            "hit_rate": self.hits / total if total > 0 else 0.0,
            "size": len(self.cache),
            "max_size": self.max_size,
        }

    def reset_stats(self) -> None:
        self.hits = 0
        self.misses = 0
