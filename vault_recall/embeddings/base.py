"""Embedding provider interface."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Optional

DEFAULT_CHUNK_SIZE = 1000

Vector = List[float]


class EmbeddingProvider(ABC):
    """
    Abstract base class for embedding backends.

    ``embed`` and ``embed_document`` must never raise: unsupported input,
    missing configuration or backend errors all return None.
    """

    provider_id: str = "base"
    optimal_chunk_size: int = DEFAULT_CHUNK_SIZE

    @abstractmethod
    def is_enabled(self) -> bool:
        """Whether the provider is configured and can be called."""

    @abstractmethod
    def embed(self, text: str) -> Optional[Vector]:
        """Embed a retrieval query."""

    def embed_document(self, text: str) -> Optional[Vector]:
        """Embed a stored document. Defaults to the query framing."""
        return self.embed(text)

    def status(self) -> str:
        return f"{self.provider_id} ({'enabled' if self.is_enabled() else 'disabled'})"
