"""
Unit tests for vault_recall/generation/selection_parser.py and prompts.py
"""
import pytest

from vault_recall.generation.prompts import build_selection_messages, format_numbered_memories
from vault_recall.generation.selection_parser import (
    RetrievalSelection,
    SelectionParseError,
    parse_selection,
    resolve_selection,
)


class TestParseSelection:
    """Permissive reply parsing."""

    def test_plain_json(self):
        selection = parse_selection('{"selected": [1, 3], "reasoning": "castle"}')
        assert selection.selected == [1, 3]
        assert selection.reasoning == "castle"

    def test_markdown_fence_and_prose(self):
        reply = 'Sure! Here you go:\n```json\n{"selected": [2], "reasoning": null}\n```\nHope that helps.'
        selection = parse_selection(reply)
        assert selection.selected == [2]
        assert selection.reasoning is None

    def test_near_json_is_repaired(self):
        selection = parse_selection("{selected: [1, 2,], 'reasoning': 'ok'}")
        assert selection.selected == [1, 2]

    def test_truncated_reply_is_repaired(self):
        selection = parse_selection('{"selected": [4, 5')
        assert selection.selected == [4, 5]

    def test_non_integer_entries_dropped(self):
        selection = parse_selection('{"selected": [1, "2", 2.0, 2.5, "x", null, true]}')
        assert selection.selected == [1, 2, 2]

    def test_missing_selected_is_empty(self):
        assert parse_selection('{"reasoning": "nothing fits"}').selected == []

    @pytest.mark.parametrize("reply", ["", "   ", "I cannot help with that.", "[1, 2, 3]"])
    def test_unusable_replies_raise(self, reply):
        with pytest.raises(SelectionParseError):
            parse_selection(reply)

    def test_selected_must_be_a_list(self):
        with pytest.raises(SelectionParseError):
            parse_selection('{"selected": "1, 2"}')


class TestResolveSelection:
    """Index resolution against stage-1 candidates."""

    def test_keeps_candidate_order(self):
        candidates = ["a", "b", "c", "d"]
        assert resolve_selection(RetrievalSelection(selected=[4, 1, 3]), candidates) == ["a", "c", "d"]

    def test_invalid_and_duplicate_indices_ignored(self):
        candidates = ["a", "b"]
        assert resolve_selection(RetrievalSelection(selected=[0, 2, 2, 9, -1]), candidates) == ["b"]

    def test_all_invalid(self):
        assert resolve_selection(RetrievalSelection(selected=[7]), ["a"]) == []


class TestPrompts:
    """Numbered list and chat message construction."""

    def test_numbered_list_format(self, make_memory):
        memories = [
            make_memory(summary="Visited the market.", importance=2),
            make_memory(summary="Learned the king's secret.", importance=5, is_secret=True, event_type="revelation"),
        ]
        assert format_numbered_memories(memories) == (
            "1. [event] [★★] Visited the market.\n"
            "2. [revelation] [★★★★★] [Secret] Learned the king's secret."
        )

    def test_selection_messages(self, make_memory):
        messages = build_selection_messages("Elena: where is the map?", [make_memory(summary="Map hidden.")], "Elena", 3)
        assert [m["role"] for m in messages] == ["system", "user"]
        user = messages[1]["content"]
        assert "Elena: where is the map?" in user
        assert "1. [event] [★★★] Map hidden." in user
        assert "Select up to 3 memories that Elena" in user
        assert '{"selected": [1, 4, 7], "reasoning": "Brief explanation"}' in user
