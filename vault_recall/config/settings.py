"""Application settings and configuration schema."""

import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class ForgettingConstants(BaseModel):
    """Forgetfulness curve constants."""
    base_lambda: float = 0.05       # importance 1 -> 0.05, importance 5 -> 0.002
    importance5_floor: float = 5.0  # importance-5 memories never score below this


class ScoringSettings(BaseModel):
    """Weights for the vector and lexical bonuses."""
    vector_similarity_threshold: float = Field(0.5, ge=0.0, lt=1.0)
    alpha: float = Field(0.7, ge=0.0, le=1.0)
    combined_boost_weight: float = Field(15.0, ge=0.0)
    bm25_epsilon: float = Field(1e-9, gt=0.0)


class QueryContextSettings(BaseModel):
    """Entity extraction and query enrichment configuration."""
    entity_window_size: int = Field(10, ge=1)
    embedding_window_size: int = Field(5, ge=1)
    recency_decay_factor: float = Field(0.09, ge=0.0)
    top_entities_count: int = Field(5, ge=0)
    entity_boost_weight: float = Field(1.5, ge=0.0)
    known_character_weight: float = 3.0
    generic_entity_ratio: float = Field(0.5, gt=0.0, le=1.0)


class RetrievalSettings(BaseModel):
    """Two-stage retrieval pipeline configuration."""
    pre_filter_tokens: int = Field(24000, ge=0)
    final_tokens: int = Field(12000, ge=0)
    smart_retrieval_enabled: bool = True
    embedding_timeout_s: float = 30.0
    rerank_timeout_s: float = 60.0
    chars_per_token: float = Field(3.5, gt=0.0)
    use_scoring_worker: bool = False


class EmbeddingSettings(BaseModel):
    """Embedding provider selection."""
    source: str = "multilingual-e5-small"
    ollama_url: str = ""
    model: str = ""
    cache_size: int = Field(500, ge=1)
    device: Optional[str] = None


class LLMSettings(BaseModel):
    """Reranker LLM configuration."""
    provider: str = "ollama"
    model: str = "llama3"
    base_url: str = "http://localhost:11434"
    api_key: str = ""
    timeout_s: float = 60.0
    max_tokens: int = 4000
    temperature: float = 0.0


# env var -> (section, field, caster)
_ENV_OVERRIDES = {
    "VAULT_RECALL_PRE_FILTER_TOKENS": ("retrieval", "pre_filter_tokens", int),
    "VAULT_RECALL_FINAL_TOKENS": ("retrieval", "final_tokens", int),
    "VAULT_RECALL_SMART_RETRIEVAL": ("retrieval", "smart_retrieval_enabled", lambda v: v.lower() == "true"),
    "VAULT_RECALL_USE_SCORING_WORKER": ("retrieval", "use_scoring_worker", lambda v: v.lower() == "true"),
    "VAULT_RECALL_EMBEDDING_SOURCE": ("embedding", "source", str),
    "VAULT_RECALL_OLLAMA_URL": ("embedding", "ollama_url", str),
    "VAULT_RECALL_EMBEDDING_MODEL": ("embedding", "model", str),
    "VAULT_RECALL_LLM_PROVIDER": ("llm", "provider", str),
    "VAULT_RECALL_LLM_MODEL": ("llm", "model", str),
    "VAULT_RECALL_LLM_BASE_URL": ("llm", "base_url", str),
    "VAULT_RECALL_LLM_API_KEY": ("llm", "api_key", str),
    "VAULT_RECALL_ALPHA": ("scoring", "alpha", float),
    "VAULT_RECALL_BOOST_WEIGHT": ("scoring", "combined_boost_weight", float),
}


class Settings(BaseModel):
    """Main application settings."""
    scoring: ScoringSettings = ScoringSettings()
    forgetting: ForgettingConstants = ForgettingConstants()
    query_context: QueryContextSettings = QueryContextSettings()
    retrieval: RetrievalSettings = RetrievalSettings()
    embedding: EmbeddingSettings = EmbeddingSettings()
    llm: LLMSettings = LLMSettings()

    @classmethod
    def from_env(cls, env: Optional[Dict[str, str]] = None) -> "Settings":
        """
        Build settings from defaults overlaid with VAULT_RECALL_* variables.

        Args:
            env: Mapping to read instead of os.environ (a .env file is loaded
                 into os.environ first when this is None)

        Returns:
            Validated Settings instance
        """
        if env is None:
            load_dotenv()
            env = dict(os.environ)

        data: Dict[str, Dict[str, Any]] = {}
        for var, (section, field, cast) in _ENV_OVERRIDES.items():
            raw = env.get(var)
            if raw is None or raw == "":
                continue
            data.setdefault(section, {})[field] = cast(raw)

        return cls.model_validate(data)
