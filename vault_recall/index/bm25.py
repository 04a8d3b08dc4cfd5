"""BM25 scoring over memory summaries."""
from __future__ import annotations
from typing import Iterable, List, Sequence
import math
import re

import numpy as np
from rank_bm25 import BM25Okapi


BM25_K1 = 1.2
BM25_B = 0.75

_WORD_RE = re.compile(r"\w+")

STOP_WORDS = frozenset([
    # English
    'the', 'and', 'is', 'a', 'an', 'in', 'to', 'of', 'for', 'with', 'on',
    'at', 'from', 'by', 'as', 'it', 'this', 'that', 'are', 'was', 'were',
    'be', 'been', 'being', 'have', 'has', 'had', 'do', 'does', 'did', 'will',
    'would', 'could', 'should', 'may', 'might', 'must', 'shall', 'can', 'or',
    'but', 'not', 'no', 'yes', 'so', 'if', 'then', 'than', 'when', 'what',
    'which', 'who', 'whom', 'whose', 'where', 'why', 'how', 'all', 'each',
    'every', 'both', 'few', 'more', 'most', 'other', 'some', 'such', 'only',
    'own', 'same', 'just', 'also', 'now', 'here', 'there', 'about', 'into',
    'through', 'during', 'before', 'after', 'above', 'below', 'up', 'down',
    'out', 'off', 'over', 'under', 'again', 'further', 'once', 'he', 'she',
    'they', 'we', 'you', 'i', 'me', 'him', 'her', 'them', 'us', 'my', 'your',
    'his', 'its', 'our', 'their',
    # Russian
    'и', 'в', 'во', 'не', 'что', 'он', 'на', 'я', 'с', 'со', 'как', 'а',
    'то', 'все', 'она', 'так', 'его', 'но', 'да', 'ты', 'к', 'у', 'же',
    'вы', 'за', 'бы', 'по', 'только', 'ее', 'мне', 'было', 'вот', 'от',
    'меня', 'еще', 'нет', 'о', 'из', 'ему', 'теперь', 'когда', 'даже', 'ну',
    'вдруг', 'ли', 'если', 'уже', 'или', 'ни', 'быть', 'был', 'него', 'до',
    'вас', 'нибудь', 'опять', 'уж', 'вам', 'ведь', 'там', 'потом', 'себя',
    'ничего', 'ей', 'может', 'они', 'тут', 'где', 'есть', 'надо', 'ней',
    'для', 'мы', 'тебя', 'их', 'чем', 'была', 'сам', 'чтоб', 'без', 'будто',
    'чего', 'раз', 'тоже', 'себе', 'под', 'будет', 'ж', 'тогда', 'кто',
    'этот', 'того', 'потому', 'этого', 'какой', 'совсем', 'ним', 'здесь',
    'этом', 'один', 'почти', 'мой', 'тем', 'чтобы', 'нее', 'сейчас', 'были',
    'куда', 'зачем', 'всех', 'никогда', 'можно', 'при', 'наконец', 'два',
    'об', 'другой', 'хоть', 'после', 'над', 'больше', 'тот', 'через', 'эти',
    'нас', 'про', 'всего', 'них', 'какая', 'много', 'разве', 'три', 'эту',
    'моя', 'впрочем', 'хорошо', 'свою', 'этой', 'перед', 'иногда', 'лучше',
    'чуть', 'том', 'нельзя', 'такой', 'им', 'более', 'всегда', 'конечно',
    'всю', 'между',
])


def tokenize(text: str) -> List[str]:
    """
    Tokenize text for BM25 scoring.

    Lowercases, extracts word-like runs in any script, and drops tokens of
    two characters or fewer as well as stop words. Order and duplicates are
    preserved because term frequency matters.

    Args:
        text: Input text

    Returns:
        List of tokens
    """
    if not text:
        return []
    return [
        token for token in _WORD_RE.findall(text.lower())
        if len(token) > 2 and token not in STOP_WORDS
    ]


class MemoryBM25(BM25Okapi):
    """
    BM25 index over one candidate batch.

    Uses the non-negative IDF variant ln((N - df + 0.5) / (df + 0.5) + 1), so
    terms present in most documents still contribute a small positive weight.
    """

    def __init__(self, corpus: Sequence[List[str]], k1: float = BM25_K1, b: float = BM25_B):
        super().__init__(list(corpus), k1=k1, b=b)

    def _calc_idf(self, nd):
        for word, freq in nd.items():
            self.idf[word] = math.log((self.corpus_size - freq + 0.5) / (freq + 0.5) + 1)

    def idf_for(self, term: str) -> float:
        return float(self.idf.get(term, 0.0))


def build_memory_index(documents: Sequence[List[str]]) -> MemoryBM25 | None:
    """
    Build corpus statistics for a batch of tokenized documents.

    Returns:
        The index, or None when the batch is empty or every document is empty
    """
    if not documents or not any(documents):
        return None
    return MemoryBM25(documents)


def batch_bm25_scores(query_tokens: Iterable[str], documents: Sequence[List[str]]) -> np.ndarray:
    """
    Score every document in a batch against the query.

    Query tokens are not deduplicated: a term repeated in the query counts once
    per repetition, which is how entity boosting raises its weight.

    Args:
        query_tokens: Tokenized (possibly boosted) query
        documents: Tokenized documents, one per candidate

    Returns:
        Array of raw BM25 scores aligned with ``documents``
    """
    query = list(query_tokens)
    index = build_memory_index(documents)
    if index is None or not query or index.avgdl == 0:
        return np.zeros(len(documents), dtype=float)
    return np.asarray(index.get_scores(query), dtype=float)
