"""Request and response models for the retrieval API."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..memory.schemas import MemoryEvent, RetrievalContext, RetrievalMode, ScoreBreakdown


class SelectRequest(BaseModel):
    """Candidate memories plus the per-call retrieval context."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "memories": [
                    {"id": "evt_1", "summary": "Elena found a hidden passage beneath the castle.",
                     "importance": 4, "message_ids": [118]},
                ],
                "context": {
                    "recent_context": "Marcus: Where did Elena go?\nElena: Back to the castle.",
                    "chat_length": 140,
                    "primary_character": "Elena",
                    "active_characters": ["Elena", "Marcus"],
                },
                "pov_characters": ["Elena"],
            }
        }
    )

    memories: List[MemoryEvent] = Field(default_factory=list)
    context: RetrievalContext = Field(default_factory=RetrievalContext)
    pov_characters: List[str] = Field(default_factory=list, description="Restrict to what these characters know")
    known_event_ids: List[str] = Field(default_factory=list)
    changed: bool = Field(False, description="Memory content edited since the last call")
    include_formatted: bool = Field(False, description="Also return the prompt-ready context block")


class ScoredEntry(BaseModel):
    """One scored candidate with its breakdown."""

    id: str
    score: float
    breakdown: ScoreBreakdown


class SelectResponse(BaseModel):
    """Final selection."""

    ids: List[str]
    mode: RetrievalMode
    stage1_count: int
    embedding_used: bool
    formatted: Optional[str] = None


class ScoreResponse(BaseModel):
    """Explain output: every candidate with its breakdown, best first."""

    scored: List[ScoredEntry]
    stage1_count: int
    selected_ids: List[str]
    mode: RetrievalMode
    embedding_used: bool


class HealthResponse(BaseModel):
    """Provider availability."""

    status: str
    embedding: str
    embedding_enabled: bool
    reranker: Optional[str] = None
    scoring_worker: bool = False
