"""
Local embeddings with sentence-transformers.

Models are loaded lazily on first use and kept for the life of the provider.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging
import threading

from .base import EmbeddingProvider, Vector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelSpec:
    """Static facts about a supported model."""
    name: str
    dimensions: int
    optimal_chunk_size: int  # characters, conservative for a 512-token window
    query_prefix: str = ""
    document_prefix: str = ""


SENTENCE_TRANSFORMER_MODELS: Dict[str, ModelSpec] = {
    "multilingual-e5-small": ModelSpec(
        name="intfloat/multilingual-e5-small",
        dimensions=384,
        optimal_chunk_size=500,
        query_prefix="query: ",
        document_prefix="passage: ",
    ),
    "bge-small-en-v1.5": ModelSpec(
        name="BAAI/bge-small-en-v1.5",
        dimensions=384,
        optimal_chunk_size=500,
    ),
    "all-MiniLM-L6-v2": ModelSpec(
        name="sentence-transformers/all-MiniLM-L6-v2",
        dimensions=384,
        optimal_chunk_size=1000,
    ),
    "paraphrase-multilingual-MiniLM-L12-v2": ModelSpec(
        name="sentence-transformers/paraphrase-multilingual-MiniLM-L12-v2",
        dimensions=384,
        optimal_chunk_size=500,
    ),
}


class SentenceTransformerEmbedder(EmbeddingProvider):
    """
    Embedding provider backed by a local SentenceTransformer model.

    E5 models expect asymmetric framing, so queries get ``query: `` and stored
    documents get ``passage: `` prepended. Vectors are L2-normalized.
    """

    provider_id = "sentence-transformers"

    def __init__(self, model_key: str = "multilingual-e5-small", device: Optional[str] = None, model: Any = None):
        """
        Args:
            model_key: Key in SENTENCE_TRANSFORMER_MODELS
            device: Torch device passed to SentenceTransformer (None = auto)
            model: Preloaded encoder with a compatible ``encode`` method
        """
        self.model_key = model_key
        self.spec = SENTENCE_TRANSFORMER_MODELS.get(model_key)
        self.device = device
        self._model = model
        self._lock = threading.Lock()

    @property
    def optimal_chunk_size(self) -> int:
        return self.spec.optimal_chunk_size if self.spec else super().optimal_chunk_size

    def is_enabled(self) -> bool:
        return self.spec is not None

    def _load(self) -> Any:
        with self._lock:
            if self._model is None:
                from sentence_transformers import SentenceTransformer

                logger.info(f"Loading embedding model {self.spec.name}")
                self._model = SentenceTransformer(self.spec.name, device=self.device)
        return self._model

    def _encode(self, text: str, prefix: str) -> Optional[Vector]:
        if not self.is_enabled() or not text or not text.strip():
            return None
        try:
            model = self._load()
            vector = model.encode(prefix + text.strip(), normalize_embeddings=True, show_progress_bar=False)
            return [float(x) for x in vector]
        except Exception as e:
            logger.warning(f"SentenceTransformer embedding failed for {self.model_key}: {e}")
            return None

    def embed(self, text: str) -> Optional[Vector]:
        return self._encode(text, self.spec.query_prefix if self.spec else "")

    def embed_document(self, text: str) -> Optional[Vector]:
        return self._encode(text, self.spec.document_prefix if self.spec else "")
