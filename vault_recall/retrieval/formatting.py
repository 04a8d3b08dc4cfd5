"""Render selected memories as a prompt block."""
from __future__ import annotations
from typing import List, Optional, Sequence

from ..generation.prompts import importance_stars
from ..memory.schemas import MemoryEvent
from .budget import CHARS_PER_TOKEN, estimate_tokens


def message_label(memory: MemoryEvent) -> str:
    """``(msg #N)`` for one source message, ``(msgs #a-b)`` for a range."""
    ids = memory.message_ids
    if len(ids) == 1:
        return f"(msg #{ids[0]})"
    return f"(msgs #{min(ids)}-{max(ids)})"


def _render(memories: Sequence[MemoryEvent], character_name: str, chat_length: int) -> List[str]:
    lines = [
        f"[{character_name}'s Memory & State]",
        f"(Current message: #{chat_length})",
        "",
    ]
    if memories:
        ordered = sorted(memories, key=lambda m: (m.sequence, m.created_at))
        lines.append("Relevant memories (in chronological order, ★=minor to ★★★★★=critical):")
        for number, memory in enumerate(ordered, start=1):
            secret = "[Secret] " if memory.is_secret else ""
            lines.append(
                f"{number}. {message_label(memory)} [{importance_stars(memory.importance)}] {secret}{memory.summary}"
            )
    lines.append(f"[End {character_name}'s Memory]")
    return lines


def format_context_for_injection(
    memories: Sequence[MemoryEvent],
    character_name: str,
    chat_length: int = 0,
    token_budget: Optional[int] = None,
    chars_per_token: float = CHARS_PER_TOKEN,
) -> str:
    """
    Format memories for injection into the generation prompt.

    Memories are listed chronologically by sequence. When ``token_budget`` is
    given and the block would exceed it, memories are dropped from the end of
    the input (lowest priority first) until it fits.

    Args:
        memories: Selected memories, highest priority first
        character_name: Name shown in the block header
        chat_length: Current message number
        token_budget: Optional token ceiling for the whole block
        chars_per_token: Token estimate ratio

    Returns:
        Formatted context block
    """
    kept = list(memories)
    text = "\n".join(_render(kept, character_name, chat_length))
    if token_budget is None:
        return text

    while kept and estimate_tokens(text, chars_per_token) > token_budget:
        kept.pop()
        text = "\n".join(_render(kept, character_name, chat_length))
    return text
