from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional, Tuple


class ItemKind(str, Enum):
    EVENT = "event"
    TODO = "todo"


class LeadTime(str, Enum):
    NONE = "none"
    MINUTES_15 = "15m"
    HOUR_1 = "1h"
    DAY_1 = "1d"

    @property
    def offset(self) -> timedelta:
        return _LEAD_OFFSETS[self]


_LEAD_OFFSETS = {
    LeadTime.NONE: timedelta(0),
    LeadTime.MINUTES_15: timedelta(minutes=15),
    LeadTime.HOUR_1: timedelta(hours=1),
    LeadTime.DAY_1: timedelta(hours=24),
}


class Recurrence(str, Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ReminderStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    SENT = "sent"
    COMPLETED = "completed"


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class KindProfile:
    """
    Kind-specific data driving the single reminder pipeline.

    Fields:
    - kind: the item kind this profile describes
    - collection: store collection holding items of this kind
    - eligible_status: status the UI layer stores on items awaiting a reminder
    - target_view: client view opened when the notification is tapped
    - recurring: whether the kind honours its recurrence field at all
    """

    kind: ItemKind
    collection: str
    eligible_status: ReminderStatus
    target_view: str
    recurring: bool


KIND_PROFILES: Dict[ItemKind, KindProfile] = {
    ItemKind.EVENT: KindProfile(
        kind=ItemKind.EVENT,
        collection="calendarEvents",
        eligible_status=ReminderStatus.ACTIVE,
        target_view="calendar",
        recurring=True,
    ),
    ItemKind.TODO: KindProfile(
        kind=ItemKind.TODO,
        collection="todos",
        eligible_status=ReminderStatus.PENDING,
        target_view="todo",
        recurring=False,
    ),
}


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class ReminderItem:
    """
    A reminder-bearing item: a calendar event or a todo.

    Fields:
    - id: opaque identifier, unique within the owner's collection
    - owner_id: user whose delivery tokens receive the notification
    - kind: event or todo
    - title: display string used verbatim in the notification
    - anchor_time: event start or todo due time (aware UTC)
    - lead_time: offset between anchor_time and the notification
    - recurrence: repeat interval; ignored for todos
    - next_trigger_time: due when <= now; None means not scheduled
    - status: active/pending while eligible, sent/completed once terminal
    - responsible: optional responsible party, shown for todos
    - ref_path: store location of the document, when the backend has one
    """

    id: str
    owner_id: str
    kind: ItemKind
    title: str
    anchor_time: datetime
    lead_time: LeadTime = LeadTime.NONE
    recurrence: Recurrence = Recurrence.NONE
    next_trigger_time: Optional[datetime] = None
    status: ReminderStatus = ReminderStatus.ACTIVE
    responsible: Optional[str] = None
    ref_path: Optional[str] = None

    @property
    def profile(self) -> KindProfile:
        return KIND_PROFILES[self.kind]

    @property
    def is_recurring(self) -> bool:
        """Todos never re-arm, whatever their stored recurrence says."""
        return self.profile.recurring and self.recurrence is not Recurrence.NONE

    @property
    def key(self) -> Tuple[ItemKind, str, str]:
        return (self.kind, self.owner_id, self.id)

    def is_due(self, now: datetime) -> bool:
        return (
            self.next_trigger_time is not None
            and self.next_trigger_time <= now
            and self.status is self.profile.eligible_status
        )


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class Mutation:
    """
    A staged state transition for one item. Only status and next_trigger_time
    are ever written by the scheduler.
    """

    kind: ItemKind
    owner_id: str
    item_id: str
    status: ReminderStatus
    next_trigger_time: Optional[datetime]
    ref_path: Optional[str] = None

    @property
    def key(self) -> Tuple[ItemKind, str, str]:
        return (self.kind, self.owner_id, self.item_id)

    @classmethod
    def for_item(
        cls, item: ReminderItem, status: ReminderStatus, next_trigger_time: Optional[datetime]
    ) -> "Mutation":
        return cls(
            kind=item.kind,
            owner_id=item.owner_id,
            item_id=item.id,
            status=status,
            next_trigger_time=next_trigger_time,
            ref_path=item.ref_path,
        )


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class DeliveryReport:
    """Per-request result reported by the push transport."""

    success_count: int
    failure_count: int


class DeliveryStatus(str, Enum):
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class DeliveryOutcome:
    """
    Result of notifying one item's owner. A send with some rejected tokens is
    still SENT; the counts carry the detail.
    """

    status: DeliveryStatus
    recipients: int = 0
    success_count: int = 0
    failure_count: int = 0
    reason: Optional[str] = None


# PUBLIC_INTERFACE
@dataclass
class RunReport:
    """Bookkeeping of a single scheduler run."""

    started_at: datetime
    scanned: Dict[str, int] = field(default_factory=dict)
    failed_scans: List[str] = field(default_factory=list)
    sent: int = 0
    skipped: int = 0
    delivery_failures: int = 0
    rearmed: int = 0
    finalized: int = 0
    failed_items: int = 0
    rejected: int = 0
    deferred: int = 0
    staged: int = 0
    committed: bool = False
    commit_error: Optional[str] = None
