"""Configuration for vault_recall."""

from .settings import (
    EmbeddingSettings,
    ForgettingConstants,
    LLMSettings,
    QueryContextSettings,
    RetrievalSettings,
    ScoringSettings,
    Settings,
)

__all__ = [
    "EmbeddingSettings",
    "ForgettingConstants",
    "LLMSettings",
    "QueryContextSettings",
    "RetrievalSettings",
    "ScoringSettings",
    "Settings",
]
