"""
Two-stage memory retrieval.

Init -> Stage1Filter -> (Stage2Smart | Stage2Simple) -> Done

Stage 1 scores every candidate and keeps the best ones that fit the
pre-filter token budget. Stage 2 narrows that set to the final budget, either
by budget alone (simple) or by asking an LLM reranker which memories matter
for the scene (smart). Optional providers (embedder, reranker, scoring
worker) degrade to a neutral signal when missing or failing; only a
malformed RetrievalContext surfaces to the caller.
"""
from __future__ import annotations
from typing import Iterable, List, Optional, Sequence, Tuple
import asyncio
import logging
import math

from ..config.settings import Settings
from ..embeddings.base import DEFAULT_CHUNK_SIZE, EmbeddingProvider
from ..embeddings.registry import create_embedding_provider
from ..generation.prompts import build_selection_messages
from ..generation.rerankers import Reranker, create_reranker
from ..generation.selection_parser import SelectionParseError, parse_selection, resolve_selection
from ..memory.schemas import (
    MemoryEvent,
    RetrievalContext,
    RetrievalMode,
    RetrievalResult,
    ScoredMemory,
)
from ..ops.scoring_worker import ScoringExecutor, ScoringWorkerError
from ..telemetry import new_run_id, timed_step
from .budget import memory_tokens, slice_to_token_budget
from .pov import filter_memories_by_pov
from .query_context import (
    build_bm25_tokens,
    build_embedding_query,
    extract_query_context,
    parse_recent_messages,
)
from .scoring import score_memories

logger = logging.getLogger(__name__)


def smart_target(stage1: Sequence[MemoryEvent], final_tokens: int, chars_per_token: float = 3.5) -> int:
    """
    How many stage-1 memories fit the final budget at their average cost.

    Returns:
        floor(final_tokens / average cost); all of stage 1 when every summary is empty
    """
    if not stage1 or final_tokens <= 0:
        return 0
    total = sum(memory_tokens(m, chars_per_token) for m in stage1)
    if total == 0:
        return len(stage1)
    return math.floor(final_tokens / (total / len(stage1)))


class MemoryRetriever:
    """
    Selects the memories to inject for the next generation turn.

    All collaborators are optional. Without an embedder the vector bonus is
    zero; without a reranker smart mode behaves like simple mode; without an
    executor scoring runs inline.
    """

    def __init__(
        self,
        embedder: Optional[EmbeddingProvider] = None,
        reranker: Optional[Reranker] = None,
        executor: Optional[ScoringExecutor] = None,
        settings: Optional[Settings] = None,
    ):
        self.embedder = embedder
        self.reranker = reranker
        self.executor = executor
        self.settings = settings or Settings()
        # the executor accepts one outstanding request
        self._executor_lock = asyncio.Lock()

    @property
    def _chars_per_token(self) -> float:
        return self.settings.retrieval.chars_per_token

    def resolve_context(self, ctx: RetrievalContext) -> RetrievalContext:
        """Fill budgets and the smart flag the caller left unset from ``settings.retrieval``."""
        defaults = self.settings.retrieval
        updates = {
            name: getattr(defaults, name)
            for name in ("pre_filter_tokens", "final_tokens", "smart_retrieval_enabled")
            if getattr(ctx, name) is None
        }
        return ctx.model_copy(update=updates) if updates else ctx

    async def _embed_query(self, text: str) -> Optional[List[float]]:
        """Query embedding, or None when unconfigured, failing or too slow."""
        if not text or self.embedder is None or not self.embedder.is_enabled():
            return None
        timeout = self.settings.retrieval.embedding_timeout_s
        try:
            return await asyncio.wait_for(asyncio.to_thread(self.embedder.embed, text), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Embedding timed out after {timeout}s, scoring without vectors")
        except Exception as e:
            logger.warning(f"Embedding provider failed, scoring without vectors: {e}")
        return None

    async def score(
        self,
        memories: Sequence[MemoryEvent],
        query_embedding: Optional[Sequence[float]],
        chat_length: int,
        query_tokens: Sequence[str],
        changed: bool = False,
    ) -> List[ScoredMemory]:
        """Score candidates in the worker when one is configured, inline otherwise."""
        if self.executor is not None:
            try:
                async with self._executor_lock:
                    return await self.executor.ascore(
                        memories,
                        query_embedding,
                        chat_length,
                        query_tokens=query_tokens,
                        changed=changed,
                        constants=self.settings.forgetting,
                        settings=self.settings.scoring,
                    )
            except ScoringWorkerError as e:
                logger.warning(f"Scoring worker failed, scoring inline: {e}")

        return score_memories(
            memories,
            query_embedding,
            chat_length,
            query_tokens=query_tokens,
            constants=self.settings.forgetting,
            settings=self.settings.scoring,
        )

    def select_relevant_memories_simple(
        self,
        stage1: Sequence[MemoryEvent],
        ctx: RetrievalContext,
        limit: Optional[int] = None,
    ) -> List[MemoryEvent]:
        """
        Budget-only stage 2: the leading stage-1 memories that fit ``ctx.final_tokens``.

        Args:
            stage1: Stage-1 memories, best first
            ctx: Retrieval context
            limit: Optional cap on the number of memories considered

        Returns:
            Selected memories in stage-1 order
        """
        ctx = self.resolve_context(ctx)
        candidates = list(stage1) if limit is None else list(stage1)[: max(0, limit)]
        return slice_to_token_budget(
            candidates,
            ctx.final_tokens,
            cost=lambda m: memory_tokens(m, self._chars_per_token),
        )

    async def _select_smart(
        self,
        stage1: Sequence[MemoryEvent],
        ctx: RetrievalContext,
    ) -> Tuple[List[MemoryEvent], RetrievalMode]:
        target = smart_target(stage1, ctx.final_tokens, self._chars_per_token)
        if target <= 0:
            # average cost exceeds the budget, but the leading memories may still fit
            return self.select_relevant_memories_simple(stage1, ctx), "simple"
        if len(stage1) <= target:
            return list(stage1), "stage1"
        if self.reranker is None:
            return self.select_relevant_memories_simple(stage1, ctx, limit=target), "simple"

        def fallback(reason: str) -> Tuple[List[MemoryEvent], RetrievalMode]:
            logger.info(f"Smart retrieval: {reason}, falling back to simple mode")
            return self.select_relevant_memories_simple(stage1, ctx, limit=target), "smart_fallback"

        logger.debug(f"Smart retrieval: asking reranker to pick {target} of {len(stage1)} memories")
        messages = build_selection_messages(
            ctx.recent_context,
            stage1,
            ctx.primary_character,
            target,
        )

        timeout = self.settings.retrieval.rerank_timeout_s
        try:
            reply = await asyncio.wait_for(asyncio.to_thread(self.reranker.rerank, messages), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Reranker timed out after {timeout}s")
            return fallback("reranker timeout")
        except Exception as e:
            logger.warning(f"Reranker failed: {e}")
            return fallback("reranker error")

        try:
            selection = parse_selection(reply)
        except SelectionParseError as e:
            return fallback(f"unparsable reply ({e})")

        if not selection.selected:
            return fallback("no memories selected")

        chosen = resolve_selection(selection, stage1)
        if not chosen:
            return fallback("all selected indices invalid")

        logger.info(
            f"Smart retrieval: reranker selected {len(chosen)} memories. "
            f"Reasoning: {selection.reasoning or 'none provided'}"
        )
        final = slice_to_token_budget(
            chosen,
            ctx.final_tokens,
            cost=lambda m: memory_tokens(m, self._chars_per_token),
        )
        return final, "smart"

    async def select_relevant_memories_smart(
        self,
        stage1: Sequence[MemoryEvent],
        ctx: RetrievalContext,
    ) -> List[MemoryEvent]:
        """
        LLM-assisted stage 2. Never raises for reranker or parse problems.

        Args:
            stage1: Stage-1 memories, best first
            ctx: Retrieval context

        Returns:
            Selected memories in stage-1 order
        """
        memories, _ = await self._select_smart(stage1, self.resolve_context(ctx))
        return memories

    async def select_relevant_memories(
        self,
        memories: Sequence[MemoryEvent],
        ctx: RetrievalContext,
        changed: bool = False,
    ) -> RetrievalResult:
        """
        Run the full two-stage selection.

        Args:
            memories: Candidate memories
            ctx: Retrieval context
            changed: Memory content was edited since the last call (forces
                     the scoring worker to refresh its copy)

        Returns:
            RetrievalResult with the final memories and the scored stage-1 list
        """
        if not memories:
            return RetrievalResult(mode="empty")
        ctx = self.resolve_context(ctx)

        run_id = new_run_id()
        qc_settings = self.settings.query_context

        with timed_step(run_id, "query_context") as fields:
            messages = parse_recent_messages(ctx.recent_context, qc_settings.entity_window_size)
            query_context = extract_query_context(messages, ctx.active_characters, qc_settings)
            chunk_size = self.embedder.optimal_chunk_size if self.embedder is not None else DEFAULT_CHUNK_SIZE
            embedding_query = build_embedding_query(messages, query_context, chunk_size, qc_settings)
            user_text = ctx.user_messages or "\n".join(reversed(messages))
            query_tokens = build_bm25_tokens(user_text, query_context, qc_settings)
            fields["entities"] = query_context.entities

        with timed_step(run_id, "embed") as fields:
            query_embedding = await self._embed_query(embedding_query)
            fields["embedding_used"] = query_embedding is not None

        with timed_step(run_id, "stage1", {"candidates": len(memories)}) as fields:
            scored = await self.score(memories, query_embedding, ctx.chat_length, query_tokens, changed=changed)
            stage1 = [
                s.memory for s in slice_to_token_budget(
                    scored,
                    ctx.pre_filter_tokens,
                    cost=lambda s: memory_tokens(s.memory, self._chars_per_token),
                )
            ]
            fields["selected"] = len(stage1)

        result = RetrievalResult(
            scored=scored,
            stage1_count=len(stage1),
            embedding_used=query_embedding is not None,
        )
        if not stage1:
            logger.debug("Stage 1 kept nothing, skipping stage 2")
            return result

        with timed_step(run_id, "stage2") as fields:
            if ctx.smart_retrieval_enabled:
                final, mode = await self._select_smart(stage1, ctx)
            else:
                final, mode = self.select_relevant_memories_simple(stage1, ctx), "simple"
            fields["mode"] = mode
            fields["selected"] = len(final)

        logger.info(f"Retrieved {len(final)} memories ({mode}) from {len(memories)} candidates")
        result.memories = final
        result.mode = mode
        return result

    async def retrieve(
        self,
        memories: Sequence[MemoryEvent],
        ctx: RetrievalContext,
        pov_characters: Optional[Sequence[str]] = None,
        known_event_ids: Optional[Iterable[str]] = None,
        changed: bool = False,
    ) -> RetrievalResult:
        """
        Restrict candidates to what the POV characters know, then select.

        If the POV filter leaves nothing, all candidates are used instead.
        """
        candidates = filter_memories_by_pov(memories, pov_characters, known_event_ids)
        if not candidates and memories:
            logger.info("POV filter removed every memory, using all candidates")
            candidates = list(memories)
        return await self.select_relevant_memories(candidates, ctx, changed=changed)


def create_retriever(settings: Optional[Settings] = None) -> MemoryRetriever:
    """
    Composition root: build a retriever and its providers from settings.

    The scoring executor, when enabled, is owned by the returned retriever;
    call ``executor.close()`` when done with it.
    """
    settings = settings or Settings()
    executor = ScoringExecutor() if settings.retrieval.use_scoring_worker else None
    return MemoryRetriever(
        embedder=create_embedding_provider(settings.embedding),
        reranker=create_reranker(settings.llm),
        executor=executor,
        settings=settings,
    )
