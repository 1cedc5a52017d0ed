"""
Integration tests for API endpoints using a SQLite DB.
"""
from datetime import datetime, timedelta, timezone

import pytest

from pocketbrain.services import logs as logs_service


class TestHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"
        assert r.json()["db"] == "ok"


class TestSaveLog:
    def test_save_basic(self, client):
        r = client.post("/logs", json={
            "log": {"description": "Ran 5k", "user_input": "ran 5k this morning"},
            "classification": {"domain": "health", "activity": "Running"},
            "moodScore": 8,
        })
        assert r.status_code == 201
        body = r.json()
        assert body["success"] is True
        assert body["log_id"] > 0
        assert body["domain_id"] > 0
        assert body["activity_id"] > 0

    def test_save_empty_object(self, client):
        r = client.post("/logs", json={})
        assert r.status_code == 201
        listed = client.get("/logs").json()
        assert listed["items"][0]["description"] == "No description provided"
        assert listed["items"][0]["domain"] == "General"

    def test_invalid_fields_do_not_reject(self, client):
        r = client.post("/logs", json={
            "log": {"description": "Coffee"},
            "moodScore": "great",
            "timeOfDay": "brunch",
            "amount": -3,
            "metadata": "nope",
        })
        assert r.status_code == 201
        item = client.get("/logs").json()["items"][0]
        assert item["mood_score"] == 5
        assert item["time_of_day"] is None
        assert item["amount"] is None
        assert item["metadata"] is None

    @pytest.mark.parametrize("body", [[1, 2], "text", 42, None])
    def test_non_object_rejected(self, client, body):
        r = client.post("/logs", json=body)
        assert r.status_code == 422
        assert r.json()["code"] in ("INVALID_PAYLOAD", "VALIDATION_ERROR")

    def test_array_is_invalid_payload(self, client):
        r = client.post("/logs", json=[{"log": {}}])
        assert r.status_code == 422
        assert r.json()["code"] == "INVALID_PAYLOAD"
        assert r.json()["details"]["received"] == "list"

    def test_storage_failure_returns_log_save_failed(self, client, monkeypatch):
        from sqlalchemy.exc import OperationalError

        def boom(session, row):
            raise OperationalError("INSERT", {}, Exception("disk full"))

        monkeypatch.setattr(logs_service, "_insert", boom)
        r = client.post("/logs", json={"log": {"description": "x"}})
        assert r.status_code == 500
        body = r.json()
        assert body["code"] == "LOG_SAVE_FAILED"
        assert body["message"] == "Database rejected the log."
        assert "disk full" in body["details"]["error"]


class TestSaveChat:
    def test_save_chat(self, client):
        r = client.post("/logs/chat", json={
            "message": {"role": "user", "content": "  How is my sleep?  "},
            "conversation_context": [{"role": "assistant", "content": "Hi!"}],
        })
        assert r.status_code == 201
        item = client.get("/logs").json()["items"][0]
        assert item["description"] == "User chat: How is my sleep?"
        assert item["activity"] == "Chat"
        assert item["priority"] == "low"
        assert item["metadata"]["conversationContext"][0]["content"] == "Hi!"

    def test_bad_role_rejected(self, client):
        r = client.post("/logs/chat", json={"message": {"role": "system", "content": "x"}})
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"

    def test_blank_content_rejected(self, client):
        r = client.post("/logs/chat", json={"message": {"role": "user", "content": "   "}})
        assert r.status_code == 422


class TestReads:
    def test_pagination(self, client, make_log):
        for i in range(3):
            make_log(f"log {i}", age=timedelta(hours=i + 1))
        body = client.get("/logs", params={"page": 2, "limit": 2}).json()
        assert body["total"] == 3
        assert body["total_pages"] == 2
        assert [i["description"] for i in body["items"]] == ["log 2"]

    def test_recent(self, client, make_log):
        make_log("today", age=timedelta(hours=2))
        make_log("last month", age=timedelta(days=30))
        body = client.get("/logs/recent", params={"days": 7}).json()
        assert [i["description"] for i in body["items"]] == ["today"]

    def test_range(self, client, make_log):
        make_log("inside", created_at=datetime(2026, 5, 2, 12, tzinfo=timezone.utc))
        make_log("outside", created_at=datetime(2026, 5, 9, 12, tzinfo=timezone.utc))
        r = client.get("/logs/range", params={"start": "2026-05-01T00:00:00", "end": "2026-05-03T00:00:00"})
        assert r.status_code == 200
        assert [i["description"] for i in r.json()["items"]] == ["inside"]

    def test_range_reversed(self, client):
        r = client.get("/logs/range", params={"start": "2026-05-03T00:00:00", "end": "2026-05-01T00:00:00"})
        assert r.status_code == 422
        assert r.json()["code"] == "INVALID_DATE_RANGE"

    def test_day(self, client, make_log):
        make_log("on the day", created_at=datetime(2026, 4, 20, 9, tzinfo=timezone.utc))
        body = client.get("/logs/day/2026-04-20").json()
        assert body["total"] == 1
        assert body["items"][0]["date"].startswith("2026-04-20")

    def test_calendar(self, client, make_log):
        make_log("a", created_at=datetime(2026, 4, 20, 9, tzinfo=timezone.utc))
        make_log("b", created_at=datetime(2026, 4, 20, 18, tzinfo=timezone.utc))
        body = client.get("/logs/calendar", params={"year": 2026, "month": 4}).json()
        assert body["days"] == {"2026-04-20": 2}

    def test_calendar_bad_month(self, client):
        r = client.get("/logs/calendar", params={"year": 2026, "month": 13})
        assert r.status_code == 422

    def test_by_domain(self, client):
        client.post("/logs", json={"log": {"description": "Standup"}, "classification": {"domain": "Work"}})
        client.post("/logs", json={"log": {"description": "Nap"}, "classification": {"domain": "Health"}})
        body = client.get("/logs/domain/work").json()
        assert [i["description"] for i in body["items"]] == ["Standup"]


class TestMemory:
    def test_search(self, client, make_log):
        make_log("Fixed the login flow")
        make_log("Evening walk")
        body = client.get("/memory/search", params={"q": "login issues"}).json()
        assert body["total"] == 1
        assert body["items"][0]["description"] == "Fixed the login flow"

    def test_search_short_query_is_empty(self, client, make_log):
        make_log("hi there")
        body = client.get("/memory/search", params={"q": "hi yo"}).json()
        assert body == {"query": "hi yo", "total": 0, "items": []}

    def test_search_keyword_filter(self, client, make_log):
        make_log("Paid the gym fee")
        minimal = client.get("/memory/search", params={"q": "gym", "filter": "minimal"}).json()
        keywords = client.get("/memory/search", params={"q": "gym", "filter": "keywords"}).json()
        assert minimal["total"] == 0
        assert keywords["total"] == 1

    def test_classification_context_empty(self, client):
        body = client.get("/memory/classification-context", params={"q": "started guitar"}).json()
        assert body["memory_block"] == "No relevant past logs found."
        assert 'USER INPUT: "started guitar"' in body["prompt"]

    def test_classification_context_with_history(self, client, make_log):
        make_log("Bought a new guitar")
        body = client.get("/memory/classification-context", params={"q": "guitar lesson"}).json()
        assert body["total"] == 1
        assert body["items"][0]["description"] == "Bought a new guitar"
        assert body["memory_block"].startswith("RELEVANT PAST LOGS:")
        assert body["memory_block"] in body["prompt"]

    def test_chat_context(self, client, make_log):
        make_log("Went running by the lake", age=timedelta(days=10))
        make_log("Lunch with Sam", age=timedelta(hours=5))
        r = client.post("/memory/chat-context", json={
            "query": "How was my running?",
            "prior_messages": [{"role": "user", "content": "hey"}],
        })
        assert r.status_code == 200
        body = r.json()
        assert body["keywords"] == ["running"]
        assert body["search_hits"] == 1
        assert body["recent_days"] == 2
        assert [i["description"] for i in body["items"]] == ["Went running by the lake", "Lunch with Sam"]
        assert body["memory_block"].startswith("RELEVANT LOGS FROM DATABASE:")
        assert body["conversation_block"] == "User: hey"


class TestTaxonomyAndAnalytics:
    def test_domains(self, client):
        client.post("/logs", json={"classification": {"domain": "work", "activity": "Coding"}})
        client.post("/logs", json={"classification": {"domain": "WORK", "activity": "Meetings"}})
        body = client.get("/taxonomy/domains").json()
        assert body["total"] == 1
        work = body["items"][0]
        assert work["name"] == "Work"
        assert work["color"] == "#3B82F6"
        assert [a["name"] for a in work["activities"]] == ["Coding", "Meetings"]

    def test_analytics_summary(self, client):
        client.post("/logs", json={"classification": {"domain": "Work", "activity": "Coding"}, "moodScore": 8})
        client.post("/logs", json={"classification": {"domain": "Work", "activity": "Coding"}, "moodScore": 6})
        body = client.get("/analytics/summary", params={"days": 7}).json()
        assert body["days"] == 7
        [row] = body["items"]
        assert row["domain"] == "Work"
        assert row["count"] == 2
        assert row["avg_mood"] == 7.0
