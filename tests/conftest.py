import os
from datetime import datetime, timezone

import pytest

# Keep tests on the in-memory backends regardless of the caller's environment
os.environ["PERSISTENCE_BACKEND"] = "memory"
os.environ.pop("INTERNAL_TRIGGER_TOKEN", None)
os.environ.pop("ENABLE_INTERVAL_TRIGGER", None)

from reminder_service.dispatcher import NotificationDispatcher  # noqa: E402
from reminder_service.models import (  # noqa: E402
    KIND_PROFILES,
    ItemKind,
    LeadTime,
    Recurrence,
    ReminderItem,
)
from reminder_service.orchestrator import build_orchestrator  # noqa: E402
from reminder_service.push import RecordingPushSender  # noqa: E402
from reminder_service.recurrence import initial_trigger  # noqa: E402
from reminder_service.repositories import InMemoryDocumentStore, InMemoryTokenRegistry  # noqa: E402

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def make_item(
    item_id="item-1",
    owner_id="user-1",
    kind=ItemKind.EVENT,
    title="Dentist",
    anchor_time=NOW,
    lead_time=LeadTime.NONE,
    recurrence=Recurrence.NONE,
    next_trigger_time="initial",
    status=None,
    responsible=None,
):
    if next_trigger_time == "initial":
        next_trigger_time = initial_trigger(anchor_time, lead_time)
    return ReminderItem(
        id=item_id,
        owner_id=owner_id,
        kind=kind,
        title=title,
        anchor_time=anchor_time,
        lead_time=lead_time,
        recurrence=recurrence,
        next_trigger_time=next_trigger_time,
        status=status or KIND_PROFILES[kind].eligible_status,
        responsible=responsible,
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def registry():
    reg = InMemoryTokenRegistry()
    reg.register("user-1", "token-a")
    reg.register("user-1", "token-b")
    return reg


@pytest.fixture
def sender():
    return RecordingPushSender()


@pytest.fixture
def dispatcher(registry, sender):
    return NotificationDispatcher(registry, sender)


@pytest.fixture
def orchestrator(store, dispatcher):
    return build_orchestrator(store=store, dispatcher=dispatcher, scan_limit=50)
