"""
Retrieval API endpoints.

Exposes the two-stage selection and its score breakdowns over HTTP. A
malformed context (negative budgets or chat length) is rejected with 422 by
request validation.
"""

from fastapi import APIRouter, Depends, HTTPException, Request

from ..retrieval.formatting import format_context_for_injection
from ..retrieval.orchestrator import MemoryRetriever
from .schemas import HealthResponse, ScoredEntry, ScoreResponse, SelectRequest, SelectResponse


router = APIRouter(prefix="/retrieval", tags=["retrieval"])


def get_retriever(request: Request) -> MemoryRetriever:
    """Retriever owned by the application (see create_app)."""
    retriever = getattr(request.app.state, "retriever", None)
    if retriever is None:
        raise HTTPException(status_code=503, detail="Retriever not initialized")
    return retriever


@router.post("/select", response_model=SelectResponse)
async def select_memories(body: SelectRequest, retriever: MemoryRetriever = Depends(get_retriever)):
    """
    Select the memories to inject for the next turn.

    Returns the selected ids in final order, the stage 2 mode, and optionally
    the formatted context block.
    """
    ctx = retriever.resolve_context(body.context)
    result = await retriever.retrieve(
        body.memories,
        ctx,
        pov_characters=body.pov_characters or None,
        known_event_ids=body.known_event_ids or None,
        changed=body.changed,
    )

    formatted = None
    if body.include_formatted:
        formatted = format_context_for_injection(
            result.memories,
            ctx.header_name,
            chat_length=ctx.chat_length,
            token_budget=ctx.final_tokens,
            chars_per_token=retriever.settings.retrieval.chars_per_token,
        )

    return SelectResponse(
        ids=result.ids,
        mode=result.mode,
        stage1_count=result.stage1_count,
        embedding_used=result.embedding_used,
        formatted=formatted,
    )


@router.post("/score", response_model=ScoreResponse)
async def score_memories(body: SelectRequest, retriever: MemoryRetriever = Depends(get_retriever)):
    """Explain a selection: every candidate with its score breakdown."""
    result = await retriever.retrieve(
        body.memories,
        body.context,
        pov_characters=body.pov_characters or None,
        known_event_ids=body.known_event_ids or None,
        changed=body.changed,
    )
    return ScoreResponse(
        scored=[
            ScoredEntry(id=s.memory.id, score=s.score, breakdown=s.breakdown)
            for s in result.scored
        ],
        stage1_count=result.stage1_count,
        selected_ids=result.ids,
        mode=result.mode,
        embedding_used=result.embedding_used,
    )


@router.get("/health", response_model=HealthResponse)
async def health(retriever: MemoryRetriever = Depends(get_retriever)):
    """Report which optional providers are configured."""
    embedder = retriever.embedder
    return HealthResponse(
        status="ok",
        embedding=embedder.status() if embedder is not None else "none",
        embedding_enabled=bool(embedder is not None and embedder.is_enabled()),
        reranker=retriever.reranker.provider_id if retriever.reranker is not None else None,
        scoring_worker=retriever.executor is not None,
    )
