"""Test configuration and fixtures."""

from typing import Callable, List, Optional

import pytest

from vault_recall.memory.schemas import MemoryEvent, RetrievalContext


@pytest.fixture
def make_memory() -> Callable[..., MemoryEvent]:
    """Factory for MemoryEvent with sequential ids and sequence numbers."""
    counter = {"n": 0}

    def _make(
        summary: str = "Something happened.",
        importance: int = 3,
        message_ids: Optional[List[int]] = None,
        **kwargs,
    ) -> MemoryEvent:
        counter["n"] += 1
        n = counter["n"]
        kwargs.setdefault("id", f"evt_{n:03d}")
        kwargs.setdefault("sequence", n)
        return MemoryEvent(
            summary=summary,
            importance=importance,
            message_ids=message_ids if message_ids is not None else [0],
            **kwargs,
        )

    return _make


@pytest.fixture
def unlimited_context() -> RetrievalContext:
    """Context whose budgets never cut anything in small tests."""
    return RetrievalContext(
        chat_length=100,
        pre_filter_tokens=1_000_000,
        final_tokens=1_000_000,
        smart_retrieval_enabled=False,
    )
