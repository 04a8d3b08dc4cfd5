"""
Memory retrieval data models.

Defines MemoryEvent and the per-call types used by the retrieval pipeline.
"""

from typing import Any, Dict, List, Literal, Optional
import time

from pydantic import BaseModel, ConfigDict, Field, field_validator


RetrievalMode = Literal["empty", "stage1", "simple", "smart", "smart_fallback"]


class MemoryEvent(BaseModel):
    """
    A single memory event recorded by the extraction pipeline.

    Every field except ``embedding`` is owned by the extraction side; the
    retrieval core only reads them. ``embedding`` is attached once, later,
    by ``attach_embedding``.
    """

    model_config = ConfigDict(
        validate_assignment=True,
        json_schema_extra={
            "example": {
                "id": "evt_0042",
                "summary": "Elena found a hidden passage beneath the old castle.",
                "importance": 4,
                "message_ids": [118, 119],
                "characters_involved": ["Elena"],
                "witnesses": ["Elena", "Marcus"],
                "is_secret": False,
                "location": "castle",
                "event_type": "revelation",
                "sequence": 42,
            }
        },
    )

    id: str = Field(..., description="Opaque unique identifier")
    summary: str = Field("", description="Event summary text")
    importance: int = Field(3, description="1 (minor) to 5 (critical), clamped")
    message_ids: List[int] = Field(default_factory=lambda: [0], description="Source message positions")
    embedding: Optional[List[float]] = Field(None, description="Summary embedding, attached asynchronously")

    characters_involved: List[str] = Field(default_factory=list)
    witnesses: List[str] = Field(default_factory=list)
    is_secret: bool = False
    location: Optional[str] = None
    event_type: str = "event"

    sequence: int = Field(0, description="Monotonic tie-break ordering")
    created_at: float = Field(default_factory=time.time, description="Unix timestamp")

    @field_validator("importance", mode="before")
    @classmethod
    def _clamp_importance(cls, value: Any) -> int:
        if value is None or value == 0:
            return 3
        return max(1, min(5, int(value)))

    @field_validator("message_ids", mode="before")
    @classmethod
    def _default_message_ids(cls, value: Any) -> List[int]:
        if not value:
            return [0]
        return value

    @field_validator("characters_involved", "witnesses", mode="before")
    @classmethod
    def _dedupe_names(cls, value: Any) -> List[str]:
        if not value:
            return []
        return list(dict.fromkeys(value))

    @property
    def last_message_id(self) -> int:
        return max(self.message_ids)

    def attach_embedding(self, vector: List[float]) -> bool:
        """
        Attach an embedding if none is present.

        Returns:
            True if the embedding was attached, False if one already existed
        """
        if self.embedding is not None or not vector:
            return False
        self.embedding = [float(x) for x in vector]
        return True


class ScoreBreakdown(BaseModel):
    """Per-component contributions to a memory's score."""

    total: float
    base: float
    base_after_floor: float
    recency_penalty: float = Field(0.0, description="Bonus added by the importance-5 floor")
    vector_similarity: float = 0.0
    vector_bonus: float = 0.0
    bm25_score: float = Field(0.0, description="Raw BM25 against the enriched query")
    bm25_normalized: float = 0.0
    bm25_bonus: float = 0.0
    distance: int = 0
    importance: int = 3


class ScoredMemory(BaseModel):
    """A memory with its composite score."""

    memory: MemoryEvent
    score: float
    breakdown: ScoreBreakdown


class RetrievalContext(BaseModel):
    """
    Immutable parameters for a single retrieval call.

    Budgets and the smart flag left as None take their value from
    ``Settings.retrieval`` (see ``MemoryRetriever.resolve_context``).
    """

    model_config = ConfigDict(frozen=True)

    recent_context: str = Field("", description="Recent dialogue, one message per line, oldest first")
    user_messages: str = Field("", description="Recent user-only text")
    chat_length: int = Field(0, ge=0)
    primary_character: str = ""
    active_characters: List[str] = Field(default_factory=list)
    pre_filter_tokens: Optional[int] = Field(None, ge=0, description="Stage 1 token budget")
    final_tokens: Optional[int] = Field(None, ge=0, description="Stage 2 token budget")
    smart_retrieval_enabled: Optional[bool] = None
    header_name: str = "Scene"


class QueryContext(BaseModel):
    """Entities extracted from recent dialogue."""

    entities: List[str] = Field(default_factory=list)
    weights: Dict[str, float] = Field(default_factory=dict)


class RetrievalResult(BaseModel):
    """Final selection plus the scored list for explain/debug output."""

    memories: List[MemoryEvent] = Field(default_factory=list)
    scored: List[ScoredMemory] = Field(default_factory=list)
    stage1_count: int = 0
    mode: RetrievalMode = "empty"
    embedding_used: bool = False

    @property
    def ids(self) -> List[str]:
        return [m.id for m in self.memories]
