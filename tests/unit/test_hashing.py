"""
Unit tests for vault_recall/persist/hashing.py

Tests stable blake2b hashing with JSON canonicalization.
"""
import pytest

from vault_recall.persist.hashing import memories_fingerprint, stable_hash


def test_dict_key_order_independence():
    """Same dict with different key order should produce same hash."""
    hash1 = stable_hash({"a": 1, "b": 2, "c": 3})
    hash2 = stable_hash({"c": 3, "a": 1, "b": 2})

    assert hash1 == hash2
    assert isinstance(hash1, str)
    assert len(hash1) == 64  # blake2b(32 bytes) = 64 hex chars


def test_list_order_matters():
    assert stable_hash([1, 2, 3]) != stable_hash([3, 2, 1])


def test_unicode_normalization():
    """Composed and decomposed forms hash the same."""
    composed = "caf\u00e9"
    decomposed = "cafe\u0301"
    assert stable_hash(composed) == stable_hash(decomposed)


def test_pydantic_model_hashes_like_its_dump(make_memory):
    memory = make_memory(summary="Elena left.")
    assert stable_hash(memory) == stable_hash(memory.model_dump(mode="json"))


def test_unsupported_type():
    with pytest.raises(TypeError):
        stable_hash(object())


def test_fingerprint_changes_with_any_field(make_memory):
    memory = make_memory(summary="Elena left.", importance=2)
    payload = [memory.model_dump(mode="json")]
    before = memories_fingerprint(payload)

    memory.importance = 4
    after = memories_fingerprint([memory.model_dump(mode="json")])

    assert before != after
    assert before == memories_fingerprint(payload)
