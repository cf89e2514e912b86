from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Type

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .models import ItemKind, LeadTime, Recurrence, ReminderItem, ReminderStatus, RunReport
from .utils import TimestampInput, parse_timestamp


def _enum_value(value: Any, enum_cls: Type[Enum], default: Enum) -> Enum:
    """
    Map a stored option onto enum_cls. Missing, blank or unrecognised values
    become default: an unknown lead time means no offset and an unknown
    frequency means the item does not repeat.
    """
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().lower())
        except ValueError:
            pass
    return default


# PUBLIC_INTERFACE
class ReminderDocument(BaseModel):
    """
    Schema of a reminder-bearing document as the UI layer stores it.

    Field names follow the stored documents (camelCase, event 'start' or todo
    'dueDate' as the anchor); populate_by_name also accepts the Python names.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        json_schema_extra={
            "example": {
                "title": "Dentist",
                "start": "2025-03-14T09:30:00+00:00",
                "reminder": "1h",
                "frequency": "monthly",
                "nextNotification": "2025-03-14T08:30:00+00:00",
                "status": "active",
                "ownerId": "uid-123",
            }
        },
    )

    title: str = Field(..., description="Display title, used verbatim in notifications")
    anchor_time: datetime = Field(
        ...,
        validation_alias=AliasChoices("anchorTime", "anchor_time", "start", "dueDate"),
        description="Event start or todo due time",
    )
    lead_time: LeadTime = Field(
        default=LeadTime.NONE,
        validation_alias=AliasChoices("reminder", "leadTime", "lead_time"),
        description="Offset before anchor_time: none, 15m, 1h or 1d",
    )
    recurrence: Recurrence = Field(
        default=Recurrence.NONE,
        validation_alias=AliasChoices("frequency", "recurrence"),
        description="Repeat interval: none, daily, weekly or monthly",
    )
    next_trigger_time: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("nextNotification", "nextTriggerTime", "next_trigger_time"),
        description="When the next notification is due; null when not scheduled",
    )
    status: ReminderStatus = Field(..., description="active/pending, sent or completed")
    responsible: Optional[str] = Field(default=None, description="Responsible party (todos)")
    owner_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("ownerId", "owner_id"),
        description="Owning user; derived from the document location when absent",
    )

    @field_validator("anchor_time", "next_trigger_time", mode="before")
    @classmethod
    def parse_times(cls, v: Optional[TimestampInput]) -> Optional[datetime]:
        """
        Normalize str/date/datetime values into aware UTC datetimes.
        """
        return parse_timestamp(v)

    @field_validator("lead_time", mode="before")
    @classmethod
    def default_lead_time(cls, v: Any) -> Any:
        return _enum_value(v, LeadTime, LeadTime.NONE)

    @field_validator("recurrence", mode="before")
    @classmethod
    def default_recurrence(cls, v: Any) -> Any:
        return _enum_value(v, Recurrence, Recurrence.NONE)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("responsible")
    @classmethod
    def blank_responsible(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        s = v.strip()
        return s or None

    def to_item(
        self,
        kind: ItemKind,
        item_id: str,
        owner_id: Optional[str] = None,
        ref_path: Optional[str] = None,
    ) -> ReminderItem:
        """
        Build the domain item. An explicit owner_id argument is used only when
        the document does not carry one.

        Raises:
            ValueError: when no owner can be determined.
        """
        owner = self.owner_id or owner_id
        if not owner:
            raise ValueError(f"Reminder document {item_id!r} has no owner")
        return ReminderItem(
            id=item_id,
            owner_id=owner,
            kind=kind,
            title=self.title,
            anchor_time=self.anchor_time,
            lead_time=self.lead_time,
            recurrence=self.recurrence,
            next_trigger_time=self.next_trigger_time,
            status=self.status,
            responsible=self.responsible,
            ref_path=ref_path,
        )


# PUBLIC_INTERFACE
class RunReportOut(BaseModel):
    """
    Schema returned by the API for a scheduler run.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "started_at": "2025-01-25T10:15:00+00:00",
                "scanned": {"event": 2, "todo": 1},
                "failed_scans": [],
                "sent": 2,
                "skipped": 1,
                "delivery_failures": 0,
                "rearmed": 1,
                "finalized": 2,
                "failed_items": 0,
                "rejected": 0,
                "deferred": 0,
                "staged": 3,
                "committed": True,
                "commit_error": None,
            }
        }
    )

    started_at: datetime = Field(..., description="Reference time of the run")
    scanned: Dict[str, int] = Field(default_factory=dict, description="Due items found per kind")
    failed_scans: List[str] = Field(default_factory=list, description="Kinds whose scan failed")
    sent: int = Field(0, description="Items whose notification reached the transport")
    skipped: int = Field(0, description="Items whose owner had no delivery tokens")
    delivery_failures: int = Field(0, description="Items whose send failed")
    rearmed: int = Field(0, description="Recurring events scheduled again")
    finalized: int = Field(0, description="Items moved to a terminal status")
    failed_items: int = Field(0, description="Items that could not be processed and stay due")
    rejected: int = Field(0, description="Unreadable due documents closed as completed")
    deferred: int = Field(0, description="Items left for the next run because the deadline elapsed")
    staged: int = Field(0, description="Mutations staged for the final commit")
    committed: bool = Field(..., description="Whether the staged mutations were written")
    commit_error: Optional[str] = Field(default=None, description="Commit failure message, if any")

    @classmethod
    def from_report(cls, report: RunReport) -> "RunReportOut":
        return cls(**vars(report))
