"""Embeddings from a local Ollama server."""
from __future__ import annotations
from typing import Optional
import logging

import requests

from .base import EmbeddingProvider, Vector

logger = logging.getLogger(__name__)


class OllamaEmbedder(EmbeddingProvider):
    """
    Embedding provider calling Ollama's ``POST /api/embeddings``.

    Enabled only when both a server URL and a model name are configured.
    """

    provider_id = "ollama"
    optimal_chunk_size = 800

    def __init__(self, base_url: str = "", model: str = "", timeout: float = 30.0):
        self.base_url = (base_url or "").rstrip("/")
        self.model = model or ""
        self.timeout = timeout

    def is_enabled(self) -> bool:
        return bool(self.base_url and self.model)

    def status(self) -> str:
        if self.is_enabled():
            return f"Ollama: {self.model}"
        return "Ollama: Not configured"

    def embed(self, text: str) -> Optional[Vector]:
        if not self.is_enabled() or not text or not text.strip():
            return None

        try:
            response = requests.post(
                f"{self.base_url}/api/embeddings",
                json={"model": self.model, "prompt": text.strip()},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.warning(f"Ollama embedding request failed: {e}")
            return None

        if response.status_code != 200:
            logger.warning(f"Ollama embedding returned status {response.status_code}: {response.text[:200]}")
            return None

        try:
            body = response.json()
        except ValueError as e:
            logger.warning(f"Ollama embedding reply was not JSON: {e}")
            return None

        embedding = body.get("embedding") if isinstance(body, dict) else None
        if not embedding:
            return None
        try:
            return [float(x) for x in embedding]
        except (TypeError, ValueError) as e:
            logger.warning(f"Ollama embedding reply had a malformed vector: {e}")
            return None
