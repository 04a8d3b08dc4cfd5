"""
Unit tests for vault_recall/retrieval/budget.py and formatting.py
"""
import pytest

from vault_recall.retrieval.budget import estimate_tokens, slice_to_token_budget
from vault_recall.retrieval.formatting import format_context_for_injection, message_label


def test_estimate_tokens_rounds_up():
    assert estimate_tokens("") == 0
    assert estimate_tokens("abc") == 1
    assert estimate_tokens("x" * 35) == 10
    assert estimate_tokens("x" * 36) == 11


def test_slice_stops_before_exceeding(make_memory):
    memories = [make_memory(summary="x" * 35) for _ in range(5)]  # 10 tokens each
    assert len(slice_to_token_budget(memories, 30)) == 3
    assert len(slice_to_token_budget(memories, 29)) == 2


def test_slice_does_not_skip_ahead(make_memory):
    big = make_memory(summary="x" * 350)  # 100 tokens
    small = make_memory(summary="x" * 7)  # 2 tokens
    assert slice_to_token_budget([big, small], 50) == []


@pytest.mark.parametrize("budget", [0, -5])
def test_non_positive_budget_is_empty(make_memory, budget):
    assert slice_to_token_budget([make_memory()], budget) == []


def test_slice_empty_input():
    assert slice_to_token_budget([], 100) == []


class TestFormatting:
    """Injected context block."""

    def test_message_labels(self, make_memory):
        assert message_label(make_memory(message_ids=[12])) == "(msg #12)"
        assert message_label(make_memory(message_ids=[20, 14, 17])) == "(msgs #14-20)"

    def test_chronological_with_stars_and_secret(self, make_memory):
        later = make_memory(summary="Marcus hid the map.", importance=4, message_ids=[30], is_secret=True, sequence=9)
        earlier = make_memory(summary="Elena found the map.", importance=2, message_ids=[10], sequence=3)
        text = format_context_for_injection([later, earlier], "Elena", chat_length=42)

        lines = text.split("\n")
        assert lines[0] == "[Elena's Memory & State]"
        assert lines[1] == "(Current message: #42)"
        assert lines[4] == "1. (msg #10) [★★] Elena found the map."
        assert lines[5] == "2. (msg #30) [★★★★] [Secret] Marcus hid the map."
        assert lines[-1] == "[End Elena's Memory]"

    def test_budget_drops_lowest_priority(self, make_memory):
        memories = [make_memory(summary=f"Memory {i} " + "x" * 100) for i in range(10)]
        text = format_context_for_injection(memories, "Elena", token_budget=120)
        assert estimate_tokens(text) <= 120
        assert "Memory 0 " in text
        assert "Memory 9 " not in text

    def test_no_memories(self):
        text = format_context_for_injection([], "Elena")
        assert text.split("\n") == ["[Elena's Memory & State]", "(Current message: #0)", "", "[End Elena's Memory]"]
