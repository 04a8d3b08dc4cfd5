"""
Unit tests for vault_recall/retrieval/scoring.py

Covers the forgetfulness curve, the importance-5 floor, the capped
vector/BM25 bonuses and batch ranking.
"""
import math

import numpy as np
import pytest

from vault_recall.config.settings import ForgettingConstants, ScoringSettings
from vault_recall.retrieval.scoring import calculate_score, forgetfulness_base, score_memories


class TestForgetfulness:
    """Recency decay and the importance floor."""

    def test_base_formula(self, make_memory):
        memory = make_memory(importance=3, message_ids=[50])
        breakdown = calculate_score(memory, None, chat_length=100)
        assert breakdown.distance == 50
        assert breakdown.base == pytest.approx(3 * math.exp(-(0.05 / 9) * 50))
        assert breakdown.total == pytest.approx(breakdown.base)

    def test_distance_uses_latest_message_and_never_negative(self, make_memory):
        memory = make_memory(message_ids=[10, 90, 40])
        assert calculate_score(memory, None, chat_length=100).distance == 10
        assert calculate_score(memory, None, chat_length=50).distance == 0

    def test_importance_five_never_below_floor(self, make_memory):
        memory_ids = range(0, 20000, 97)
        for last in memory_ids:
            memory = make_memory(importance=5, message_ids=[0])
            breakdown = calculate_score(memory, None, chat_length=last)
            assert breakdown.total >= 5.0
            assert breakdown.base_after_floor >= breakdown.base
            assert breakdown.recency_penalty == pytest.approx(breakdown.base_after_floor - breakdown.base)

    @pytest.mark.parametrize("importance", [1, 2, 3, 4])
    def test_smaller_distance_scores_higher(self, make_memory, importance):
        for d_near, d_far in [(0, 1), (5, 50), (100, 1000)]:
            near = calculate_score(make_memory(importance=importance, message_ids=[1000 - d_near]), None, 1000)
            far = calculate_score(make_memory(importance=importance, message_ids=[1000 - d_far]), None, 1000)
            assert near.total > far.total

    def test_higher_importance_decays_slower(self):
        constants = ForgettingConstants()
        ratio_low = forgetfulness_base(1, 100, constants) / 1
        ratio_high = forgetfulness_base(4, 100, constants) / 4
        assert ratio_high > ratio_low


class TestBonuses:
    """Vector and lexical bonuses."""

    def test_vector_bonus_above_threshold(self, make_memory):
        memory = make_memory(importance=1, message_ids=[100], embedding=[1.0, 0.0])
        breakdown = calculate_score(memory, [1.0, 0.0], chat_length=100)
        assert breakdown.vector_similarity == pytest.approx(1.0)
        assert breakdown.vector_bonus == pytest.approx(0.7 * 15)

    def test_vector_bonus_zero_at_or_below_threshold(self, make_memory):
        # orthogonal: similarity 0.0 equals a zero threshold
        settings = ScoringSettings(vector_similarity_threshold=0.0)
        orthogonal = make_memory(embedding=[0.0, 1.0])
        assert calculate_score(orthogonal, [1.0, 0.0], 0, settings=settings).vector_bonus == 0.0

        below = make_memory(embedding=[0.3, 0.95])
        assert calculate_score(below, [1.0, 0.0], 0).vector_bonus == 0.0
        above = make_memory(embedding=[0.5, 0.5])
        assert calculate_score(above, [1.0, 0.0], 0).vector_bonus > 0.0
        opposite = make_memory(embedding=[-1.0, 0.0])
        assert calculate_score(opposite, [1.0, 0.0], 0).vector_bonus == 0.0

    def test_missing_embeddings_contribute_nothing(self, make_memory):
        memory = make_memory(embedding=[1.0, 0.0])
        assert calculate_score(memory, None, 0).vector_bonus == 0.0
        assert calculate_score(make_memory(), [1.0, 0.0], 0).vector_bonus == 0.0

    def test_bm25_bonus_uses_one_minus_alpha(self, make_memory):
        breakdown = calculate_score(make_memory(), None, 0, normalized_bm25=1.0, raw_bm25=3.2)
        assert breakdown.bm25_bonus == pytest.approx(0.3 * 15)
        assert breakdown.bm25_score == pytest.approx(3.2)

    def test_breakdown_components_sum_to_total(self, make_memory):
        memory = make_memory(importance=5, message_ids=[3], embedding=[0.9, 0.1])
        b = calculate_score(memory, [1.0, 0.0], 500, normalized_bm25=0.4)
        assert b.total == pytest.approx(b.base_after_floor + b.vector_bonus + b.bm25_bonus)

    def test_bonuses_never_exceed_boost_weight(self, make_memory):
        rng = np.random.default_rng(1234)
        memory = make_memory(importance=3, message_ids=[0])
        for _ in range(500):
            alpha = float(rng.uniform(0, 1))
            boost = float(rng.uniform(0, 50))
            threshold = float(rng.uniform(0, 0.99))
            angle = float(rng.uniform(0, math.pi))
            normalized_bm25 = float(rng.uniform(-0.5, 2.0))
            settings = ScoringSettings(
                alpha=alpha,
                combined_boost_weight=boost,
                vector_similarity_threshold=threshold,
            )
            memory.embedding = [math.cos(angle), math.sin(angle)]

            b = calculate_score(memory, [1.0, 0.0], 10, normalized_bm25=normalized_bm25, settings=settings)

            assert b.vector_bonus >= 0.0
            assert b.bm25_bonus >= 0.0
            assert b.vector_bonus + b.bm25_bonus <= boost + 1e-9


class TestScoreMemories:
    """Batch scoring and ordering."""

    def test_sorted_descending(self, make_memory):
        memories = [
            make_memory(importance=1, message_ids=[100]),
            make_memory(importance=5, message_ids=[100]),
            make_memory(importance=3, message_ids=[50]),
        ]
        scored = score_memories(memories, None, chat_length=100)
        assert [s.memory.id for s in scored] == [memories[1].id, memories[2].id, memories[0].id]

    def test_ties_keep_input_order(self, make_memory):
        memories = [make_memory(summary="same", importance=2, message_ids=[7]) for _ in range(6)]
        scored = score_memories(memories, None, chat_length=10)
        assert [s.memory.id for s in scored] == [m.id for m in memories]

    def test_returns_caller_objects(self, make_memory):
        memories = [make_memory(), make_memory()]
        scored = score_memories(memories, None, chat_length=0)
        assert {id(s.memory) for s in scored} == {id(m) for m in memories}

    def test_bm25_normalized_by_batch_max(self, make_memory):
        memories = [
            make_memory(summary="castle castle gate"),
            make_memory(summary="castle river bank"),
            make_memory(summary="market square"),
        ]
        scored = score_memories(memories, None, chat_length=0, query_tokens=["castle"])
        by_id = {s.memory.id: s.breakdown for s in scored}

        assert by_id[memories[0].id].bm25_normalized == pytest.approx(1.0)
        assert 0.0 < by_id[memories[1].id].bm25_normalized < 1.0
        assert by_id[memories[2].id].bm25_bonus == 0.0
        assert scored[0].memory.id == memories[0].id

    def test_no_query_tokens_means_no_lexical_bonus(self, make_memory):
        scored = score_memories([make_memory(summary="castle")], None, chat_length=0, query_tokens=[])
        assert scored[0].breakdown.bm25_bonus == 0.0

    def test_empty_batch(self):
        assert score_memories([], None, chat_length=10) == []
