"""
Unit tests for vault_recall/retrieval/pov.py
"""
from vault_recall.retrieval.pov import filter_memories_by_pov


def test_no_pov_keeps_everything(make_memory):
    memories = [make_memory(), make_memory()]
    assert filter_memories_by_pov(memories, None) == memories
    assert filter_memories_by_pov(memories, []) == memories


def test_witnesses_match_case_insensitively(make_memory):
    seen = make_memory(witnesses=["ELENA"])
    unseen = make_memory(witnesses=["Marcus"])
    assert filter_memories_by_pov([seen, unseen], ["elena"]) == [seen]


def test_involvement_only_counts_for_public_events(make_memory):
    public = make_memory(characters_involved=["Elena"])
    secret = make_memory(characters_involved=["Elena"], is_secret=True)
    witnessed_secret = make_memory(witnesses=["Elena"], is_secret=True)
    result = filter_memories_by_pov([public, secret, witnessed_secret], ["Elena"])
    assert result == [public, witnessed_secret]


def test_known_event_ids(make_memory):
    told = make_memory(witnesses=["Marcus"])
    other = make_memory(witnesses=["Marcus"])
    assert filter_memories_by_pov([told, other], ["Elena"], known_event_ids=[told.id]) == [told]


def test_any_pov_character_suffices(make_memory):
    a = make_memory(witnesses=["Elena"])
    b = make_memory(witnesses=["Marcus"])
    c = make_memory(witnesses=["Sarah"])
    assert filter_memories_by_pov([a, b, c], ["Marcus", "Elena"]) == [a, b]


def test_empty_memories():
    assert filter_memories_by_pov([], ["Elena"]) == []
