import os
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

# Ensure we default to memory backend for tests to avoid Firebase dependencies
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")

from conftest import make_item  # noqa: E402

from reminder_service.dispatcher import NotificationDispatcher  # noqa: E402
from reminder_service.main import app  # noqa: E402
from reminder_service.models import ItemKind, Recurrence, ReminderStatus  # noqa: E402
from reminder_service.orchestrator import build_orchestrator, get_orchestrator  # noqa: E402
from reminder_service.push import RecordingPushSender  # noqa: E402
from reminder_service.repositories import InMemoryDocumentStore, InMemoryTokenRegistry  # noqa: E402

client = TestClient(app)


@pytest.fixture
def wired():
    """
    Override the orchestrator dependency with one built on fresh in-memory
    backends, and hand the backends to the test.
    """
    store = InMemoryDocumentStore()
    registry = InMemoryTokenRegistry()
    registry.register("user-1", "token-a")
    sender = RecordingPushSender()
    orchestrator = build_orchestrator(store, NotificationDispatcher(registry, sender))
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    yield store, sender
    app.dependency_overrides.pop(get_orchestrator, None)


def assert_report_shape(report: dict):
    for key in [
        "started_at",
        "scanned",
        "failed_scans",
        "sent",
        "skipped",
        "delivery_failures",
        "rearmed",
        "finalized",
        "failed_items",
        "rejected",
        "deferred",
        "staged",
        "committed",
        "commit_error",
    ]:
        assert key in report
    datetime.fromisoformat(report["started_at"].replace("Z", "+00:00"))
    assert isinstance(report["committed"], bool)


class TestHealth:
    def test_health_check(self):
        res = client.get("/")
        assert res.status_code == 200
        data = res.json()
        assert data["message"] == "Healthy"
        assert data["backend"] in ("memory", "firestore")


class TestRunEndpoint:
    def test_run_with_nothing_due(self, wired):
        res = client.post("/api/v1/reminders/run")
        assert res.status_code == 200
        report = res.json()
        assert_report_shape(report)
        assert report["scanned"] == {"event": 0, "todo": 0}
        assert report["staged"] == 0
        assert report["committed"] is True

    def test_run_processes_due_items(self, wired):
        store, sender = wired
        past = datetime.now(timezone.utc) - timedelta(minutes=10)
        store.add(make_item(item_id="ev", anchor_time=past, recurrence=Recurrence.WEEKLY))
        store.add(make_item(item_id="td", kind=ItemKind.TODO, anchor_time=past, responsible="Rui"))

        res = client.post("/api/v1/reminders/run")
        assert res.status_code == 200
        report = res.json()
        assert_report_shape(report)
        assert report["scanned"] == {"event": 1, "todo": 1}
        assert report["sent"] == 2
        assert report["rearmed"] == 1
        assert report["finalized"] == 1
        assert report["committed"] is True

        event = store.get(ItemKind.EVENT, "user-1", "ev")
        assert event.status is ReminderStatus.ACTIVE
        assert event.next_trigger_time == past + timedelta(days=7)
        todo = store.get(ItemKind.TODO, "user-1", "td")
        assert todo.status is ReminderStatus.SENT
        assert todo.next_trigger_time is None
        assert {m.data["targetView"] for m in sender.messages} == {"calendar", "todo"}

    def test_get_is_not_allowed(self, wired):
        res = client.get("/api/v1/reminders/run")
        assert res.status_code == 405


class TestTriggerToken:
    def test_missing_token_is_forbidden(self, wired, monkeypatch):
        monkeypatch.setenv("INTERNAL_TRIGGER_TOKEN", "s3cret")
        res = client.post("/api/v1/reminders/run")
        assert res.status_code == 403
        assert res.json()["detail"] == "Forbidden"

    def test_wrong_token_is_forbidden(self, wired, monkeypatch):
        monkeypatch.setenv("INTERNAL_TRIGGER_TOKEN", "s3cret")
        res = client.post("/api/v1/reminders/run", headers={"X-Internal-Token": "nope"})
        assert res.status_code == 403

    def test_matching_token_runs(self, wired, monkeypatch):
        monkeypatch.setenv("INTERNAL_TRIGGER_TOKEN", "s3cret")
        res = client.post("/api/v1/reminders/run", headers={"X-Internal-Token": "s3cret"})
        assert res.status_code == 200
        assert res.json()["committed"] is True
