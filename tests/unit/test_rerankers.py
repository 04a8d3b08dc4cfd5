"""
Unit tests for vault_recall/generation/rerankers.py
"""
from unittest.mock import MagicMock, patch

import pytest
import requests

from vault_recall.config.settings import LLMSettings
from vault_recall.generation.rerankers import OllamaReranker, create_reranker

MESSAGES = [
    {"role": "system", "content": "You select memories."},
    {"role": "user", "content": "Select up to 2 memories."},
]


class TestOllamaReranker:
    """Chat call with requests patched."""

    def test_payload_and_reply(self):
        response = MagicMock(status_code=200)
        response.json.return_value = {"message": {"content": ' {"selected": [1]} \n'}}
        reranker = OllamaReranker(model="qwen2.5", base_url="http://localhost:11434/", temperature=0.1)

        with patch("vault_recall.generation.rerankers.requests.post", return_value=response) as post:
            reply = reranker.rerank(MESSAGES)

        assert reply == '{"selected": [1]}'
        assert post.call_args.args[0] == "http://localhost:11434/api/chat"
        payload = post.call_args.kwargs["json"]
        assert payload["model"] == "qwen2.5"
        assert payload["messages"] == MESSAGES
        assert payload["stream"] is False
        assert payload["format"] == "json"
        assert payload["options"]["temperature"] == 0.1

    def test_error_status_raises(self):
        response = MagicMock(status_code=404, text="model not found")
        with patch("vault_recall.generation.rerankers.requests.post", return_value=response):
            with pytest.raises(RuntimeError, match="status 404"):
                OllamaReranker().rerank(MESSAGES)

    def test_timeout_raises(self):
        with patch(
            "vault_recall.generation.rerankers.requests.post",
            side_effect=requests.exceptions.Timeout(),
        ):
            with pytest.raises(RuntimeError, match="timed out"):
                OllamaReranker(timeout=5).rerank(MESSAGES)

    def test_availability(self):
        with patch(
            "vault_recall.generation.rerankers.requests.get",
            side_effect=requests.exceptions.ConnectionError(),
        ):
            assert OllamaReranker().is_available() is False
        with patch("vault_recall.generation.rerankers.requests.get", return_value=MagicMock(status_code=200)):
            assert OllamaReranker().is_available() is True


class TestCreateReranker:
    """Registry lookup."""

    def test_ollama(self):
        reranker = create_reranker(LLMSettings(provider="Ollama", model="llama3"))
        assert isinstance(reranker, OllamaReranker)
        assert reranker.model == "llama3"

    @pytest.mark.parametrize("provider", ["", "none", "claude-local"])
    def test_disabled_or_unknown(self, provider):
        assert create_reranker(LLMSettings(provider=provider)) is None

    def test_missing_optional_package(self):
        with patch.dict("sys.modules", {"openai": None}):
            assert create_reranker(LLMSettings(provider="openai")) is None
