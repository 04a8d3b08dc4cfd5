"""
Permissive parsing of LLM memory-selection replies.

Replies are expected to carry ``{"selected": [...], "reasoning": "..."}`` but
models wrap JSON in markdown fences, add prose, or emit trailing commas and
unquoted keys. The reply is narrowed to the first JSON object and repaired
before validation.
"""
from __future__ import annotations
from typing import Any, List, Optional, Sequence, TypeVar
import logging
import re

import json_repair
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

T = TypeVar("T")

_JSON_BLOCK_RE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL | re.IGNORECASE)


class SelectionParseError(ValueError):
    """Raised when a selection reply cannot be turned into a RetrievalSelection."""


class RetrievalSelection(BaseModel):
    """Validated selection reply. Indices are 1-based."""

    reasoning: Optional[str] = None
    selected: List[int] = Field(default_factory=list)

    @field_validator("selected", mode="before")
    @classmethod
    def _keep_integer_like(cls, value: Any) -> List[int]:
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValueError("selected must be a list")
        indices = []
        for item in value:
            if isinstance(item, bool):
                continue
            try:
                number = float(item)
            except (TypeError, ValueError):
                continue
            if number.is_integer():
                indices.append(int(number))
        return indices

    @field_validator("reasoning", mode="before")
    @classmethod
    def _stringify_reasoning(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return value if isinstance(value, str) else str(value)


def extract_json_object(text: str) -> str:
    """Narrow a reply down to its JSON object text (fenced block first, then outermost braces)."""
    raw = str(text or "").strip()
    if not raw:
        raise SelectionParseError("empty reply")
    match = _JSON_BLOCK_RE.search(raw)
    if match:
        raw = match.group(1)
    start = raw.find("{")
    end = raw.rfind("}")
    if start >= 0 and end > start:
        raw = raw[start: end + 1]
    elif start >= 0:
        # truncated reply, let the repair step close it
        raw = raw[start:]
    return raw


def parse_selection(reply: str) -> RetrievalSelection:
    """
    Parse a reranker reply into a RetrievalSelection.

    Args:
        reply: Raw LLM output

    Returns:
        Validated selection (possibly with an empty ``selected`` list)

    Raises:
        SelectionParseError: If no JSON object can be recovered
    """
    raw = extract_json_object(reply)
    try:
        data = json_repair.loads(raw)
    except Exception as e:
        raise SelectionParseError(f"unrepairable reply: {e}") from e

    if not isinstance(data, dict):
        raise SelectionParseError(f"expected a JSON object, got {type(data).__name__}")

    try:
        return RetrievalSelection.model_validate(data)
    except ValidationError as e:
        raise SelectionParseError(str(e)) from e


def resolve_selection(selection: RetrievalSelection, candidates: Sequence[T]) -> List[T]:
    """
    Map 1-based indices onto candidates.

    Out-of-range indices are dropped and duplicates are ignored. The result
    keeps the candidates' own order rather than the order of ``selected``.
    """
    chosen = {i for i in selection.selected if 1 <= i <= len(candidates)}
    if len(chosen) < len(selection.selected):
        logger.debug(
            "Dropped %d invalid or duplicate indices from selection",
            len(selection.selected) - len(chosen),
        )
    return [item for number, item in enumerate(candidates, start=1) if number in chosen]
