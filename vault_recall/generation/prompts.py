"""Prompt construction for LLM-assisted memory selection."""
from __future__ import annotations
from typing import Dict, List, Sequence

from ..memory.schemas import MemoryEvent


SELECTION_SYSTEM_PROMPT = (
    "You are a narrative memory analyzer. Given the current scene and a numbered "
    "list of memories, select the memories a character would most naturally recall. "
    "Answer with a single JSON object and nothing else."
)

SELECTION_USER_TEMPLATE = """<scene>
{scene}
</scene>

<memories>
{numbered_list}
</memories>

<task>
Select up to {limit} memories that {character} would most naturally recall for this scene.

<selection_criteria>
- High importance (★★★★★) events take priority over low importance ones
- Direct relevance to current conversation topics or characters mentioned
- Relationship history with characters present in the scene
- Emotional continuity (past feelings toward people or places being discussed)
- Secrets or private knowledge relevant to the situation
- Recent events that provide immediate context
</selection_criteria>

<output_format>
{{"selected": [1, 4, 7], "reasoning": "Brief explanation"}}
</output_format>

<example>
Scene mentions: Elena asking about the old castle
Available: 1. [event] [★★] Visited market yesterday, 2. [revelation] [★★★★] Discovered hidden passage in castle, 3. [event] [★] Ate breakfast
Output: {{"selected": [2], "reasoning": "The hidden passage discovery is directly relevant to discussing the castle"}}
</example>

Return only the JSON object with selected memory numbers (1-indexed) and reasoning.
</task>"""


def importance_stars(importance: int) -> str:
    return "★" * max(1, min(5, importance))


def format_numbered_memories(memories: Sequence[MemoryEvent]) -> str:
    """
    Render memories as a 1-based numbered list.

    Each line reads ``N. [event_type] [★★★] [Secret] summary``; the secret tag
    is omitted for non-secret memories.
    """
    lines = []
    for number, memory in enumerate(memories, start=1):
        secret = "[Secret] " if memory.is_secret else ""
        lines.append(
            f"{number}. [{memory.event_type or 'event'}] [{importance_stars(memory.importance)}] "
            f"{secret}{memory.summary}"
        )
    return "\n".join(lines)


def build_selection_messages(
    scene: str,
    memories: Sequence[MemoryEvent],
    character: str,
    limit: int,
) -> List[Dict[str, str]]:
    """
    Build the chat messages asking an LLM to pick relevant memories.

    Args:
        scene: Recent dialogue
        memories: Candidates, in the order their numbers refer to
        character: Point-of-view character name
        limit: Maximum number of memories to select

    Returns:
        System and user messages in ``{"role", "content"}`` form
    """
    user = SELECTION_USER_TEMPLATE.format(
        scene=scene.strip(),
        numbered_list=format_numbered_memories(memories),
        limit=limit,
        character=character or "the character",
    )
    return [
        {"role": "system", "content": SELECTION_SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]
