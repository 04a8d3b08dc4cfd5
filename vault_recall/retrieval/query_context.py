"""
Query context extraction.

Turns recent dialogue into an enriched embedding query and a boosted BM25
token list. Rule-based, no model: capitalized words in Latin and Cyrillic
script plus quoted speech, weighted by recency.
"""

from __future__ import annotations
from typing import Dict, List, Optional, Sequence
import math
import re

from ..config.settings import QueryContextSettings
from ..index.bm25 import tokenize
from ..memory.schemas import QueryContext


DEFAULT_CHUNK_SIZE = 1000
MAX_ANCHOR_ENTITIES = 5

LATIN_STARTERS = frozenset([
    'The', 'This', 'That', 'Then', 'There', 'These', 'Those',
    'When', 'Where', 'What', 'Which', 'While', 'Who', 'Why',
    'How', 'Here', 'Now', 'Just', 'But', 'And', 'Yet', 'Still',
    'Also', 'Only', 'Even', 'Well', 'Much', 'Very', 'Some',
])

CYRILLIC_STARTERS = frozenset([
    'После', 'Когда', 'Потом', 'Затем', 'Тогда', 'Здесь', 'Там',
    'Это', 'Эта', 'Этот', 'Эти', 'Что', 'Как', 'Где', 'Куда',
    'Почему', 'Зачем', 'Кто', 'Чей', 'Какой', 'Какая', 'Какое',
    'Пока', 'Если', 'Хотя', 'Также', 'Ещё', 'Уже', 'Вот', 'Вон',
])

_LATIN_NAME_RE = re.compile(r"\b[A-Z][a-z]{2,}\b")
# \b is unreliable around Cyrillic in mixed text; bound by non-Cyrillic letters instead
_CYRILLIC_NAME_RE = re.compile(r"(?<![а-яёА-ЯЁ])[А-ЯЁ][а-яё]{2,}(?![а-яёА-ЯЁ])")
_QUOTE_RES = (re.compile(r'"([^"]+)"'), re.compile(r"«([^»]+)»"))


def extract_entities_from_text(text: str) -> List[str]:
    """Extract probable entities from one message, in order of appearance per rule."""
    if not text:
        return []

    entities = [m for m in _LATIN_NAME_RE.findall(text) if m not in LATIN_STARTERS]
    entities.extend(m for m in _CYRILLIC_NAME_RE.findall(text) if m not in CYRILLIC_STARTERS)

    for quote_re in _QUOTE_RES:
        for content in quote_re.findall(text):
            content = content.strip()
            if 3 <= len(content) <= 50:
                entities.append(content)

    return entities


def extract_query_context(
    messages: Sequence[str],
    active_characters: Optional[Sequence[str]] = None,
    settings: Optional[QueryContextSettings] = None,
) -> QueryContext:
    """
    Extract weighted entities from recent messages.

    Each occurrence adds ``1 - index * recency_decay_factor`` where index 0 is
    the newest message. Known character names receive a fixed boost even when
    they are not mentioned. Entities appearing in more than
    ``generic_entity_ratio`` of the scanned messages are dropped as too generic.

    Args:
        messages: Recent message texts, newest first
        active_characters: Known character names
        settings: Extraction settings

    Returns:
        QueryContext with the top entities and their cumulative weights
    """
    if not messages:
        return QueryContext()

    settings = settings or QueryContextSettings()
    scanned = list(messages[: settings.entity_window_size])

    scores: Dict[str, float] = {}
    message_counts: Dict[str, int] = {}

    for index, text in enumerate(scanned):
        recency_weight = 1 - index * settings.recency_decay_factor
        found = extract_entities_from_text(text or "")

        for entity in dict.fromkeys(found):
            message_counts[entity] = message_counts.get(entity, 0) + 1
        for entity in found:
            scores[entity] = scores.get(entity, 0.0) + recency_weight

    for name in active_characters or []:
        if name and len(name) >= 2:
            scores[name] = scores.get(name, 0.0) + settings.known_character_weight

    threshold = len(scanned) * settings.generic_entity_ratio
    for entity, count in message_counts.items():
        if count > threshold:
            scores.pop(entity, None)

    ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)
    ranked = ranked[: settings.top_entities_count]

    return QueryContext(
        entities=[entity for entity, _ in ranked],
        weights={entity: weight for entity, weight in ranked},
    )


def build_embedding_query(
    messages: Sequence[str],
    query_context: Optional[QueryContext] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    settings: Optional[QueryContextSettings] = None,
) -> str:
    """
    Build the text sent to the embedding provider.

    The newest message is repeated, the second newest is followed by its first
    half, older messages in the window appear once. Repeated message texts are
    only used once. Top entities are appended as anchors and the result is cut
    to ``chunk_size`` characters.

    Args:
        messages: Recent message texts, newest first
        query_context: Extracted entities
        chunk_size: Preferred input length of the embedding provider
        settings: Extraction settings

    Returns:
        Query text no longer than ``chunk_size``
    """
    if not messages or chunk_size <= 0:
        return ""

    settings = settings or QueryContextSettings()
    recent = [m for m in messages[: settings.embedding_window_size] if m]

    weighted: List[str] = []
    seen = set()
    for index, text in enumerate(recent):
        if text in seen:
            continue
        seen.add(text)
        if index == 0:
            weighted.extend([text, text])
        elif index == 1:
            weighted.extend([text, text[: len(text) // 2]])
        else:
            weighted.append(text)

    anchors = " ".join((query_context.entities if query_context else [])[:MAX_ANCHOR_ENTITIES])
    query = " ".join(part for part in (" ".join(p for p in weighted if p), anchors) if part)
    return query[:chunk_size]


def build_bm25_tokens(
    user_text: str,
    query_context: Optional[QueryContext] = None,
    settings: Optional[QueryContextSettings] = None,
) -> List[str]:
    """
    Tokenize the user's text and append boosted entity tokens.

    Each entity is repeated ``ceil(weight * entity_boost_weight)`` times to
    raise its term frequency in the query. Entities go through the same
    tokenizer as memory summaries so multi-word quotes still match.

    Args:
        user_text: Raw user-side text
        query_context: Extracted entities
        settings: Extraction settings

    Returns:
        Token list for BM25 scoring
    """
    tokens = tokenize(user_text or "")
    if not query_context or not query_context.entities:
        return tokens

    settings = settings or QueryContextSettings()
    for entity in query_context.entities:
        weight = query_context.weights.get(entity, 1.0) * settings.entity_boost_weight
        repeats = math.ceil(weight)
        entity_tokens = tokenize(entity)
        for _ in range(max(0, repeats)):
            tokens.extend(entity_tokens)

    return tokens


def parse_recent_messages(recent_context: str, count: int = 10) -> List[str]:
    """
    Split newline-separated dialogue into messages, newest first.

    Args:
        recent_context: Dialogue text, oldest line first
        count: Maximum messages to keep

    Returns:
        Up to ``count`` non-empty lines, newest first
    """
    if not recent_context:
        return []
    lines = [line for line in recent_context.split("\n") if line.strip()]
    return list(reversed(lines[-count:])) if count > 0 else []
