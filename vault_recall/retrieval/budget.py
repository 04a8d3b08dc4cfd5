"""Token estimation and budget slicing."""
from __future__ import annotations
from typing import Callable, List, Sequence, TypeVar
import math

from ..memory.schemas import MemoryEvent

CHARS_PER_TOKEN = 3.5

T = TypeVar("T")


def estimate_tokens(text: str, chars_per_token: float = CHARS_PER_TOKEN) -> int:
    """Cheap length-based token estimate: ceil(len / chars_per_token)."""
    if not text:
        return 0
    return math.ceil(len(text) / chars_per_token)


def memory_tokens(memory: MemoryEvent, chars_per_token: float = CHARS_PER_TOKEN) -> int:
    return estimate_tokens(memory.summary, chars_per_token)


def slice_to_token_budget(
    items: Sequence[T],
    budget: int,
    cost: Callable[[T], int] = memory_tokens,
) -> List[T]:
    """
    Take items in order until the next one would exceed the budget.

    Items are included whole or not at all; slicing stops at the first item
    that does not fit, it does not skip ahead to smaller ones.

    Args:
        items: Items in priority order
        budget: Token budget
        cost: Token cost of a single item

    Returns:
        Leading prefix of ``items`` that fits in ``budget``
    """
    if budget <= 0 or not items:
        return []

    selected = []
    total = 0
    for item in items:
        tokens = cost(item)
        if total + tokens > budget:
            break
        selected.append(item)
        total += tokens
    return selected
