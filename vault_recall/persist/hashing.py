"""
Deterministic content hashing.

Used as cache keys for embeddings and as the change fingerprint the scoring
executor compares before resending memory payloads.
"""

import hashlib
import json
import unicodedata
from typing import Any, Iterable

from pydantic import BaseModel


def _canonical_bytes(obj: Any) -> bytes:
    if isinstance(obj, bytes):
        return obj
    if isinstance(obj, str):
        return unicodedata.normalize("NFC", obj).encode("utf-8")
    if isinstance(obj, BaseModel):
        obj = obj.model_dump(mode="json")
    if isinstance(obj, (dict, list, tuple)):
        canonical = json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
        return canonical.encode("utf-8")
    raise TypeError(f"Cannot hash type {type(obj)}: {obj!r}")


def stable_hash(obj: Any) -> str:
    """
    Hash a dict, list, string, bytes or pydantic model.

    Dict keys are sorted and strings NFC-normalized, so equal content always
    gives the same digest regardless of key order.

    Returns:
        64-character hex string (blake2b)

    Examples:
        >>> stable_hash({"b": 2, "a": 1}) == stable_hash({"a": 1, "b": 2})
        True
    """
    return hashlib.blake2b(_canonical_bytes(obj), digest_size=32).hexdigest()


def memories_fingerprint(payload: Iterable[dict]) -> str:
    """Fingerprint of a serialized memory list; any field change alters it."""
    return stable_hash(list(payload))
