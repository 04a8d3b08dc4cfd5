"""Point-of-view filtering: which memories a character could know about."""
from __future__ import annotations
from typing import Iterable, List, Optional, Sequence

from ..memory.schemas import MemoryEvent


def filter_memories_by_pov(
    memories: Sequence[MemoryEvent],
    pov_characters: Optional[Sequence[str]],
    known_event_ids: Optional[Iterable[str]] = None,
) -> List[MemoryEvent]:
    """
    Keep memories known to any of the POV characters.

    A memory is known when a POV character witnessed it, was involved in a
    non-secret event, or has the event id in their known events. Name
    matching is case-insensitive.

    Args:
        memories: Candidate memories
        pov_characters: Character names whose knowledge applies
        known_event_ids: Event ids explicitly known to the POV characters

    Returns:
        Filtered memories in input order (all of them when no POV is given)
    """
    if not memories:
        return []
    if not pov_characters:
        return list(memories)

    pov = {name.lower() for name in pov_characters if name}
    known = set(known_event_ids or [])

    def is_known(memory: MemoryEvent) -> bool:
        if any(w.lower() in pov for w in memory.witnesses):
            return True
        if not memory.is_secret and any(c.lower() in pov for c in memory.characters_involved):
            return True
        return memory.id in known

    return [m for m in memories if is_known(m)]
