"""
LLM reranker adapters.

A reranker takes chat messages and returns the raw reply text. Rerankers are
allowed to raise; the orchestrator treats any exception like an unparsable
reply and falls back to budget-only selection.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional
import logging

import requests

from ..config.settings import LLMSettings

logger = logging.getLogger(__name__)

ChatMessages = List[Dict[str, str]]


class Reranker(ABC):
    """Abstract base class for LLM rerank providers."""

    provider_id: str = "base"

    @abstractmethod
    def rerank(self, messages: ChatMessages) -> str:
        """Send chat messages and return the reply text."""

    def is_available(self) -> bool:
        return True


class OllamaReranker(Reranker):
    """
    Reranker backed by a local Ollama server (``POST /api/chat``).

    JSON output mode is requested so small local models stay on format.
    """

    provider_id = "ollama"

    def __init__(
        self,
        model: str = "llama3",
        base_url: str = "http://localhost:11434",
        timeout: float = 60.0,
        temperature: float = 0.0,
        max_tokens: int = 4000,
    ):
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens

    def is_available(self) -> bool:
        """Check if the Ollama server answers."""
        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=5)
            return response.status_code == 200
        except requests.exceptions.RequestException:
            return False

    def rerank(self, messages: ChatMessages) -> str:
        """
        Call Ollama's chat endpoint.

        Raises:
            RuntimeError: If the request fails or returns a non-200 status
        """
        payload = {
            "model": self.model,
            "messages": messages,
            "stream": False,
            "format": "json",
            "options": {
                "temperature": self.temperature,
                "num_predict": self.max_tokens,
            },
        }
        try:
            response = requests.post(f"{self.base_url}/api/chat", json=payload, timeout=self.timeout)
        except requests.exceptions.Timeout:
            raise RuntimeError(f"Ollama rerank timed out after {self.timeout}s")
        except requests.exceptions.RequestException as e:
            raise RuntimeError(f"Ollama rerank failed: {e}. Check if Ollama is running at {self.base_url}.")

        if response.status_code != 200:
            raise RuntimeError(f"Ollama API returned status {response.status_code}: {response.text}")

        return response.json().get("message", {}).get("content", "").strip()


class OpenAIReranker(Reranker):
    """Reranker using the OpenAI chat completions API (or any compatible server)."""

    provider_id = "openai"

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: str = "",
        base_url: Optional[str] = None,
        timeout: float = 60.0,
        temperature: float = 0.0,
        max_tokens: int = 4000,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        try:
            import openai
        except ImportError:
            raise ImportError("OpenAI package required: pip install vault-recall[openai]")
        self.client = openai.OpenAI(api_key=api_key or None, base_url=base_url or None, timeout=timeout)

    def rerank(self, messages: ChatMessages) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        return response.choices[0].message.content or ""


def _ollama_from_settings(settings: LLMSettings) -> Reranker:
    return OllamaReranker(
        model=settings.model,
        base_url=settings.base_url,
        timeout=settings.timeout_s,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
    )


def _openai_from_settings(settings: LLMSettings) -> Reranker:
    # the Ollama default URL makes no sense for OpenAI
    base_url = settings.base_url if "11434" not in settings.base_url else None
    return OpenAIReranker(
        model=settings.model,
        api_key=settings.api_key,
        base_url=base_url,
        timeout=settings.timeout_s,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
    )


RERANKERS: Dict[str, Callable[[LLMSettings], Reranker]] = {
    OllamaReranker.provider_id: _ollama_from_settings,
    OpenAIReranker.provider_id: _openai_from_settings,
}


def create_reranker(settings: Optional[LLMSettings] = None) -> Optional[Reranker]:
    """
    Build the reranker named by ``settings.provider``.

    Returns:
        Reranker instance, or None when the provider is empty, "none", unknown,
        or cannot be constructed
    """
    settings = settings or LLMSettings()
    provider = (settings.provider or "").lower()
    if provider in ("", "none"):
        return None

    factory = RERANKERS.get(provider)
    if factory is None:
        logger.warning(f"Unknown reranker provider '{settings.provider}', smart retrieval disabled")
        return None

    try:
        return factory(settings)
    except ImportError as e:
        logger.warning(f"Reranker '{provider}' unavailable: {e}")
        return None
