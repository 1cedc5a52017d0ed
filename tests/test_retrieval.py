"""
Tests for the retrieval engine: token filters, full-text search,
recency window, merged chat context and graceful degradation.
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from pocketbrain.core.errors import StorageError
from pocketbrain.services import retrieval
from pocketbrain.services.prompts import CLASSIFICATION_EMPTY, ChatMessage
from pocketbrain.services.retrieval import (
    LogSummary,
    assemble_chat_context,
    classification_context,
    fetch_recent,
    keyword_filter,
    merge_context,
    minimal_filter,
    recent_logs,
    search_logs,
    search_related,
)
from pocketbrain.services.taxonomy import resolve_activity, resolve_domain


def _summary(id, date=None, description="x"):
    return LogSummary(id=id, date=date, content=description, description=description, user_input=description)


def _broken_session():
    db = MagicMock()
    db.execute.side_effect = OperationalError("SELECT", {}, Exception("db down"))
    db.get_bind.return_value.dialect.name = "sqlite"
    return db


# ---------------------------------------------------------------------------
# Token filters
# ---------------------------------------------------------------------------

class TestTokenFilters:
    def test_minimal_keeps_long_tokens(self):
        assert minimal_filter("I went to the Gym today") == ["went", "today"]

    def test_minimal_drops_everything_short(self):
        assert minimal_filter("hi there") == ["there"]
        assert minimal_filter("hi yo") == []

    def test_keyword_filter(self):
        assert keyword_filter("What did I do about Running last week?") == ["running"]

    def test_keyword_filter_strips_punctuation(self):
        assert keyword_filter("Coffee, budget & SIP!") == ["coffee", "budget", "sip"]

    def test_keyword_filter_only_stop_words(self):
        assert keyword_filter("what did you do") == []


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

class TestSearchLogs:
    def test_no_tokens_never_touches_db(self):
        db = MagicMock()
        assert search_logs(db, "hi yo") == []
        assert search_logs(db, "") == []
        db.execute.assert_not_called()
        db.get_bind.assert_not_called()

    def test_matches_any_field(self, db, make_log):
        make_log("Fixed the login flow", user_input="spent hours on auth")
        make_log("Morning run", content="ran along the river")
        make_log("Dinner with friends")

        assert [s.description for s in search_logs(db, "login problems")] == ["Fixed the login flow"]
        assert [s.description for s in search_logs(db, "river")] == ["Morning run"]
        assert [s.description for s in search_logs(db, "hours")] == ["Fixed the login flow"]

    def test_tokens_are_or_matched(self, db, make_log):
        make_log("Fixed the login flow")
        make_log("Morning run by the river")
        results = search_logs(db, "login river")
        assert {s.description for s in results} == {"Fixed the login flow", "Morning run by the river"}

    def test_case_insensitive(self, db, make_log):
        make_log("Went RUNNING at dawn")
        assert len(search_logs(db, "running")) == 1

    def test_newest_first_and_capped_at_five(self, db, make_log):
        for i in range(7):
            make_log(f"coding session {i}", age=timedelta(hours=i + 1))
        results = search_logs(db, "coding")
        assert len(results) == 5
        assert [s.description for s in results] == [f"coding session {i}" for i in range(5)]

    def test_like_wildcards_are_literal(self, db, make_log):
        make_log("Leg gym-day done")
        assert search_logs(db, "gym_day") == []

    def test_joined_names(self, db, make_log):
        domain_id = resolve_domain(db, "Work")
        activity_id = resolve_activity(db, "Coding", domain_id)
        db.commit()
        make_log("refactoring session", domain_id=domain_id, activity_id=activity_id)
        [hit] = search_logs(db, "refactoring")
        assert hit.domain == "Work"
        assert hit.activity == "Coding"

    def test_storage_failure_raises(self):
        with pytest.raises(StorageError):
            search_logs(_broken_session(), "running")

    def test_search_related_degrades_to_empty(self):
        db = _broken_session()
        assert search_related(db, "running") == []
        db.rollback.assert_called_once()


# ---------------------------------------------------------------------------
# Recency
# ---------------------------------------------------------------------------

class TestRecentLogs:
    def test_window(self, db, make_log):
        make_log("one hour ago", age=timedelta(hours=1))
        make_log("thirty hours ago", age=timedelta(hours=30))
        make_log("four days ago", age=timedelta(days=4))

        results = recent_logs(db, 2)
        assert [s.description for s in results] == ["one hour ago", "thirty hours ago"]

    def test_explicit_now(self, db, make_log):
        make_log("old", created_at=datetime(2026, 1, 10, 12, tzinfo=timezone.utc))
        make_log("older", created_at=datetime(2026, 1, 5, 12, tzinfo=timezone.utc))
        now = datetime(2026, 1, 11, tzinfo=timezone.utc)
        assert [s.description for s in recent_logs(db, 3, now=now)] == ["old"]

    def test_future_entries_excluded(self, db, make_log):
        make_log("from the future", age=-timedelta(days=1))
        assert recent_logs(db, 7) == []

    def test_fetch_recent_degrades_to_empty(self):
        assert fetch_recent(_broken_session(), 3) == []


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------

class TestMergeContext:
    def test_search_hits_first(self):
        now = datetime.now(tz=timezone.utc)
        old_hit = _summary(1, now - timedelta(days=30))
        new_recent = _summary(2, now)
        merged = merge_context([old_hit], [new_recent])
        assert [s.id for s in merged] == [1, 2]

    def test_duplicates_removed_by_id(self):
        merged = merge_context([_summary(1), _summary(2)], [_summary(2), _summary(3), _summary(1)])
        assert [s.id for s in merged] == [1, 2, 3]

    def test_timestamp_identity_when_id_missing(self):
        ts = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)
        merged = merge_context([_summary(None, ts)], [_summary(None, ts), _summary(None, ts + timedelta(minutes=1))])
        assert len(merged) == 2

    def test_empty_inputs(self):
        assert merge_context([], []) == []
        assert [s.id for s in merge_context([], [_summary(4)])] == [4]


# ---------------------------------------------------------------------------
# Classification / chat context
# ---------------------------------------------------------------------------

class TestClassificationContext:
    def test_empty_history(self, db):
        ctx = classification_context(db, "started learning guitar")
        assert ctx.logs == []
        assert ctx.memory_block == CLASSIFICATION_EMPTY
        assert CLASSIFICATION_EMPTY in ctx.prompt
        assert 'USER INPUT: "started learning guitar"' in ctx.prompt

    def test_block_includes_metadata(self, db, make_log):
        domain_id = resolve_domain(db, "Growth")
        activity_id = resolve_activity(db, "Guitar", domain_id)
        db.commit()
        make_log(
            "Practiced guitar chords",
            domain_id=domain_id,
            activity_id=activity_id,
            mood_score=7,
            log_metadata='{"instrument": "guitar"}',
        )
        ctx = classification_context(db, "more guitar practice")
        assert [s.description for s in ctx.logs] == ["Practiced guitar chords"]
        block = ctx.memory_block
        assert block in ctx.prompt
        assert block.startswith("RELEVANT PAST LOGS:\n- Domain: Growth, Activity: Guitar")
        assert "Mood: 7/10" in block
        assert 'Metadata: {"instrument": "guitar"}' in block


class TestAssembleChatContext:
    def test_hit_uses_two_day_window(self, db, make_log):
        make_log("Went running by the lake", age=timedelta(days=10))
        make_log("Lunch with Sam", age=timedelta(hours=30))
        make_log("Dentist appointment", age=timedelta(hours=60))

        ctx = assemble_chat_context(db, "How was my running?")
        assert ctx.keywords == ["running"]
        assert ctx.search_hits == 1
        assert ctx.recent_days == 2
        assert [s.description for s in ctx.logs] == ["Went running by the lake", "Lunch with Sam"]

    def test_no_hit_uses_three_day_window(self, db, make_log):
        make_log("Lunch with Sam", age=timedelta(hours=30))
        make_log("Dentist appointment", age=timedelta(hours=60))
        make_log("Ancient history", age=timedelta(days=5))

        ctx = assemble_chat_context(db, "what did I do")
        assert ctx.search_hits == 0
        assert ctx.recent_days == 3
        assert [s.description for s in ctx.logs] == ["Lunch with Sam", "Dentist appointment"]

    def test_keywords_searched_when_present(self, db, make_log):
        make_log("Paid the electricity bill", age=timedelta(days=20))
        make_log("What a day at the beach", age=timedelta(days=20))
        ctx = assemble_chat_context(db, "What about my electricity?")
        assert ctx.keywords == ["electricity"]
        assert ctx.search_hits == 1
        assert [s.description for s in ctx.logs] == ["Paid the electricity bill"]

    def test_short_keywords_dropped_like_plain_search(self, db, make_log):
        make_log("Paid the gym fee", age=timedelta(days=20))
        ctx = assemble_chat_context(db, "gym")
        assert ctx.keywords == ["gym"]
        assert ctx.search_hits == 0

    def test_stop_word_question_searches_raw_text(self, db, make_log):
        make_log("What a day at the beach", age=timedelta(days=20))
        ctx = assemble_chat_context(db, "What did I do?")
        assert ctx.keywords == []
        assert ctx.search_hits == 1
        assert ctx.recent_days == 2
        assert [s.description for s in ctx.logs] == ["What a day at the beach"]

    def test_recent_hit_appears_once(self, db, make_log):
        make_log("Went running by the lake", age=timedelta(hours=2))
        ctx = assemble_chat_context(db, "running")
        assert len(ctx.logs) == 1

    def test_conversation_limited_to_last_four(self, db):
        messages = [ChatMessage(role="user" if i % 2 == 0 else "assistant", content=f"m{i}") for i in range(6)]
        ctx = assemble_chat_context(db, "hello", messages)
        assert ctx.conversation_block.splitlines() == [
            "User: m2", "Assistant: m3", "User: m4", "Assistant: m5",
        ]
        assert "RECENT CONVERSATION:" in ctx.prompt
        assert 'User Question: "hello"' in ctx.prompt

    def test_storage_down_still_returns_context(self):
        ctx = assemble_chat_context(_broken_session(), "running plans")
        assert ctx.logs == []
        assert ctx.recent_days == 3
        assert ctx.memory_block == ""

    def test_window_sizes_come_from_settings(self, db, make_log, monkeypatch):
        monkeypatch.setattr(retrieval.settings, "CHAT_RECENT_DAYS_WITHOUT_HITS", 1)
        make_log("Lunch with Sam", age=timedelta(hours=30))
        ctx = assemble_chat_context(db, "anything new")
        assert ctx.recent_days == 1
        assert ctx.logs == []
