"""Tests for the conversation context manager and SQLite stores."""

import pytest
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from unittest.mock import Mock

from memory.sqlite_store import SQLiteMemoryStore
from memory.usage_store import SQLiteUsageStore
from memory.models import ConversationTurn
from memory.errors import ConversationResetError
from memory.context_manager import (
    ConversationContextManager,
    derive_conversation_id,
    find_pending_query,
)
from schemas.context import EventSource


def make_turn(turn_id: int, role: str, content: str) -> ConversationTurn:
    return ConversationTurn(turn_id=turn_id, role=role, content=content)


class TestConversationContextManager:
    """Test load/append/reset over a real SQLite store."""

    @pytest.fixture(autouse=True)
    def setup(self, tmp_path):
        self.store = SQLiteMemoryStore(db_path=str(tmp_path / "conversations.db"))
        self.manager = ConversationContextManager(store=self.store, history_window=2)

    def test_append_and_load_in_order(self):
        """Turns come back chronologically."""
        self.manager.append("c1", "user", "first")
        self.manager.append("c1", "assistant", "second")
        self.manager.append("c1", "user", "third")

        turns = self.manager.load("c1")

        assert [t.content for t in turns] == ["first", "second", "third"]
        assert [t.role for t in turns] == ["user", "assistant", "user"]

    def test_load_is_bounded_by_window(self):
        """At most 2 * history_window most recent turns are returned."""
        for i in range(10):
            self.manager.append("c1", "user" if i % 2 == 0 else "assistant", f"turn {i}")

        turns = self.manager.load("c1")

        assert len(turns) == 4
        assert [t.content for t in turns] == ["turn 6", "turn 7", "turn 8", "turn 9"]

    def test_conversations_are_isolated(self):
        self.manager.append("c1", "user", "hello")
        self.manager.append("c2", "user", "other")

        assert [t.content for t in self.manager.load("c1")] == ["hello"]
        assert [t.content for t in self.manager.load("c2")] == ["other"]

    def test_reset_clears_history(self):
        """After a successful reset, load returns nothing."""
        self.manager.append("c1", "user", "hello")
        self.manager.append("c1", "assistant", "hi")

        self.manager.reset("c1")

        assert self.manager.load("c1") == []
        assert self.store.get_turn_count("c1") == 0

    def test_get_context_messages(self):
        self.manager.append("c1", "user", "hello")
        self.manager.append("c1", "assistant", "hi")

        messages = self.manager.get_context_messages("c1")

        assert [(m.role, m.content) for m in messages] == [("user", "hello"), ("assistant", "hi")]


class TestContextManagerFailures:
    """Storage failures degrade instead of raising, except for reset."""

    def setup_method(self):
        self.store = Mock()
        self.manager = ConversationContextManager(store=self.store)

    def test_load_fails_soft(self):
        self.store.get_recent_turns.side_effect = RuntimeError("disk I/O error")

        assert self.manager.load("c1") == []

    def test_append_failure_is_swallowed(self):
        self.store.add_turn.side_effect = RuntimeError("database is locked")

        self.manager.append("c1", "user", "hello")

        self.store.add_turn.assert_called_once_with("c1", "user", "hello")

    def test_reset_failure_is_raised(self):
        self.store.delete_turns.side_effect = RuntimeError("database is locked")

        with pytest.raises(ConversationResetError) as exc_info:
            self.manager.reset("c1")

        assert exc_info.value.conversation_id == "c1"

    def test_load_filters_non_replayable_roles(self):
        self.store.get_recent_turns.return_value = [
            make_turn(1, "user", "q"),
            make_turn(2, "system", "internal"),
            make_turn(3, "assistant", "a"),
        ]

        turns = self.manager.load("c1")

        assert [t.role for t in turns] == ["user", "assistant"]


class TestConversationId:
    """Test conversation id precedence."""

    def test_group_beats_room_and_user(self):
        source = EventSource(group_id="G1", room_id="R1", user_id="U1")
        assert derive_conversation_id(source) == "G1"

    def test_room_beats_user(self):
        source = EventSource(room_id="R1", user_id="U1")
        assert derive_conversation_id(source) == "R1"

    def test_user_only(self):
        assert derive_conversation_id(EventSource(user_id="U1")) == "U1"

    def test_unknown_fallback(self):
        assert derive_conversation_id(EventSource()) == "unknown"
        assert derive_conversation_id(None) == "unknown"


class TestPendingQuery:
    """Test pending clarification lookup."""

    CLARIFY = "どのあたりで探していますか？"

    def test_finds_user_turn_before_clarification(self):
        history = [
            make_turn(1, "user", "近くのカフェ"),
            make_turn(2, "assistant", self.CLARIFY),
        ]

        assert find_pending_query(history, self.CLARIFY) == "近くのカフェ"

    def test_no_pending_when_last_reply_is_normal(self):
        history = [
            make_turn(1, "user", "近くのカフェ"),
            make_turn(2, "assistant", self.CLARIFY),
            make_turn(3, "user", "渋谷"),
            make_turn(4, "assistant", "渋谷ならこのカフェがおすすめです。"),
        ]

        assert find_pending_query(history, self.CLARIFY) is None

    def test_lookback_limits_scan(self):
        history = [
            make_turn(1, "user", "近くのカフェ"),
            make_turn(2, "assistant", self.CLARIFY),
            make_turn(3, "user", "a"),
            make_turn(4, "user", "b"),
        ]

        assert find_pending_query(history, self.CLARIFY, lookback=2) is None
        assert find_pending_query(history, self.CLARIFY, lookback=3) == "近くのカフェ"

    def test_empty_history(self):
        assert find_pending_query([], self.CLARIFY) is None


class TestSQLiteUsageStore:
    """Test daily usage counting."""

    def test_increment_counts_per_user_and_day(self, tmp_path):
        store = SQLiteUsageStore(db_path=str(tmp_path / "usage.db"))
        today = date(2026, 10, 17)

        assert store.increment("U1", today) == 1
        assert store.increment("U1", today) == 2
        assert store.increment("U2", today) == 1
        assert store.increment("U1", date(2026, 10, 18)) == 1
        assert store.get_count("U1", today) == 2
        assert store.get_count("U3", today) == 0

    def test_concurrent_increments_get_distinct_totals(self, tmp_path):
        store = SQLiteUsageStore(db_path=str(tmp_path / "usage.db"))
        today = date(2026, 10, 17)

        with ThreadPoolExecutor(max_workers=8) as executor:
            totals = list(executor.map(lambda _: store.increment("U1", today), range(16)))

        assert sorted(totals) == list(range(1, 17))
        assert store.get_count("U1", today) == 16
