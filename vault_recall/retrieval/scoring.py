"""
Composite memory scoring.

score = forgetfulness base (with importance-5 floor)
      + alpha * boost * normalized vector similarity
      + (1 - alpha) * boost * batch-normalized BM25

The two bonuses together never exceed ``combined_boost_weight``.
"""
from __future__ import annotations
from typing import List, Optional, Sequence
import math

from ..config.settings import ForgettingConstants, ScoringSettings
from ..index.bm25 import batch_bm25_scores, tokenize
from ..index.vectors import cosine_similarity
from ..memory.schemas import MemoryEvent, ScoreBreakdown, ScoredMemory


def _clamp01(value: float) -> float:
    if not math.isfinite(value):
        return 0.0
    return max(0.0, min(1.0, value))


def forgetfulness_base(importance: int, distance: int, constants: ForgettingConstants) -> float:
    """importance * e^(-lambda * distance) with lambda = base_lambda / importance^2."""
    decay = constants.base_lambda / (importance ** 2)
    return importance * math.exp(-decay * distance)


def vector_bonus(similarity: float, settings: ScoringSettings) -> float:
    """Bonus for similarity above threshold, rescaled to [0, 1] and weighted by alpha."""
    threshold = settings.vector_similarity_threshold
    if similarity <= threshold:
        return 0.0
    normalized = _clamp01((similarity - threshold) / (1 - threshold))
    return _clamp01(settings.alpha) * settings.combined_boost_weight * normalized


def calculate_score(
    memory: MemoryEvent,
    query_embedding: Optional[Sequence[float]],
    chat_length: int,
    normalized_bm25: float = 0.0,
    raw_bm25: float = 0.0,
    constants: Optional[ForgettingConstants] = None,
    settings: Optional[ScoringSettings] = None,
) -> ScoreBreakdown:
    """
    Score a single memory.

    Args:
        memory: Memory to score
        query_embedding: Embedding of the enriched query, or None
        chat_length: Current conversation length in messages
        normalized_bm25: BM25 score divided by the batch maximum
        raw_bm25: Raw BM25 score, reported in the breakdown
        constants: Forgetfulness curve constants
        settings: Bonus weights

    Returns:
        ScoreBreakdown whose ``total`` is the composite score
    """
    constants = constants or ForgettingConstants()
    settings = settings or ScoringSettings()

    importance = memory.importance
    distance = max(0, chat_length - memory.last_message_id)
    base = forgetfulness_base(importance, distance, constants)

    base_after_floor = base
    if importance == 5:
        base_after_floor = max(base, constants.importance5_floor)

    similarity = 0.0
    v_bonus = 0.0
    if query_embedding is not None and memory.embedding:
        similarity = cosine_similarity(query_embedding, memory.embedding)
        v_bonus = vector_bonus(similarity, settings)

    bm25_normalized = _clamp01(normalized_bm25)
    b_bonus = (1 - _clamp01(settings.alpha)) * settings.combined_boost_weight * bm25_normalized

    return ScoreBreakdown(
        total=base_after_floor + v_bonus + b_bonus,
        base=base,
        base_after_floor=base_after_floor,
        recency_penalty=base_after_floor - base,
        vector_similarity=similarity,
        vector_bonus=v_bonus,
        bm25_score=raw_bm25,
        bm25_normalized=bm25_normalized,
        bm25_bonus=b_bonus,
        distance=distance,
        importance=importance,
    )


def score_memories(
    memories: Sequence[MemoryEvent],
    query_embedding: Optional[Sequence[float]],
    chat_length: int,
    query_tokens: Optional[Sequence[str]] = None,
    constants: Optional[ForgettingConstants] = None,
    settings: Optional[ScoringSettings] = None,
) -> List[ScoredMemory]:
    """
    Score a batch of memories and sort by descending score.

    BM25 corpus statistics (IDF, average length) are computed once over the
    batch summaries, and raw scores are normalized by the batch maximum.
    The sort is stable: equal scores keep their input order.

    Args:
        memories: Candidate memories
        query_embedding: Embedding of the enriched query, or None
        chat_length: Current conversation length in messages
        query_tokens: Boosted BM25 query tokens
        constants: Forgetfulness curve constants
        settings: Bonus weights

    Returns:
        Scored memories, best first
    """
    if not memories:
        return []

    settings = settings or ScoringSettings()
    documents = [tokenize(m.summary) for m in memories]
    raw_scores = batch_bm25_scores(query_tokens or [], documents)
    max_raw = float(raw_scores.max()) if len(raw_scores) else 0.0
    denominator = max(max_raw, settings.bm25_epsilon)

    scored = []
    for memory, raw in zip(memories, raw_scores):
        raw = float(raw)
        breakdown = calculate_score(
            memory,
            query_embedding,
            chat_length,
            normalized_bm25=raw / denominator,
            raw_bm25=raw,
            constants=constants,
            settings=settings,
        )
        scored.append(ScoredMemory(memory=memory, score=breakdown.total, breakdown=breakdown))

    scored.sort(key=lambda s: s.score, reverse=True)
    return scored
