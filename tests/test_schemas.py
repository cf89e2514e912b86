from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from reminder_service.models import ItemKind, LeadTime, Recurrence, ReminderStatus, RunReport
from reminder_service.schemas import ReminderDocument, RunReportOut


class TestReminderDocument:
    def test_parses_stored_event_document(self):
        doc = ReminderDocument.model_validate(
            {
                "title": "Dentist",
                "start": datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc),
                "reminder": "1h",
                "frequency": "monthly",
                "nextNotification": datetime(2025, 3, 14, 8, 30, tzinfo=timezone.utc),
                "status": "active",
                "color": "blue",
            }
        )
        item = doc.to_item(ItemKind.EVENT, "ev-1", owner_id="uid-1", ref_path="users/uid-1/calendarEvents/ev-1")
        assert item.owner_id == "uid-1"
        assert item.lead_time is LeadTime.HOUR_1
        assert item.recurrence is Recurrence.MONTHLY
        assert item.status is ReminderStatus.ACTIVE
        assert item.ref_path == "users/uid-1/calendarEvents/ev-1"

    def test_todo_due_date_string_is_promoted_to_midnight_utc(self):
        doc = ReminderDocument.model_validate(
            {"title": "Pay rent", "dueDate": "2025-03-31", "status": "pending", "nextNotification": None}
        )
        assert doc.anchor_time == datetime(2025, 3, 31, tzinfo=timezone.utc)
        assert doc.next_trigger_time is None

    def test_naive_timestamps_are_treated_as_utc(self):
        doc = ReminderDocument.model_validate(
            {"title": "x", "start": "2025-03-31T10:00:00", "status": "active"}
        )
        assert doc.anchor_time == datetime(2025, 3, 31, 10, 0, tzinfo=timezone.utc)

    def test_date_objects_are_accepted(self):
        doc = ReminderDocument.model_validate({"title": "x", "dueDate": date(2025, 1, 2), "status": "pending"})
        assert doc.anchor_time == datetime(2025, 1, 2, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "  ", "NONE"])
    def test_missing_lead_and_frequency_default_to_none(self, value):
        doc = ReminderDocument.model_validate(
            {"title": "x", "start": "2025-03-31T10:00:00+00:00", "status": "Active", "reminder": value, "frequency": value}
        )
        assert doc.lead_time is LeadTime.NONE
        assert doc.recurrence is Recurrence.NONE
        assert doc.status is ReminderStatus.ACTIVE

    def test_stored_owner_wins_over_path_owner(self):
        doc = ReminderDocument.model_validate(
            {"title": "x", "start": "2025-03-31", "status": "active", "ownerId": "stored"}
        )
        assert doc.to_item(ItemKind.EVENT, "e", owner_id="from-path").owner_id == "stored"

    def test_blank_responsible_is_none(self):
        doc = ReminderDocument.model_validate(
            {"title": "x", "dueDate": "2025-03-31", "status": "pending", "responsible": "   "}
        )
        assert doc.responsible is None

    def test_document_without_owner_is_rejected(self):
        doc = ReminderDocument.model_validate({"title": "x", "start": "2025-03-31", "status": "active"})
        with pytest.raises(ValueError):
            doc.to_item(ItemKind.EVENT, "e")

    def test_invalid_values_fail_validation(self):
        with pytest.raises(ValidationError):
            ReminderDocument.model_validate({"title": "x", "start": "not-a-date", "status": "active"})
        with pytest.raises(ValidationError):
            ReminderDocument.model_validate({"title": "x", "start": "2025-03-31", "status": "archived"})
        with pytest.raises(ValidationError):
            ReminderDocument.model_validate({"start": "2025-03-31", "status": "active"})

    @pytest.mark.parametrize("reminder,frequency", [("2h", "yearly"), ("30m", 7), (15, ["daily"])])
    def test_unknown_lead_and_frequency_fall_back_to_none(self, reminder, frequency):
        doc = ReminderDocument.model_validate(
            {"title": "x", "start": "2025-03-31", "status": "active", "reminder": reminder, "frequency": frequency}
        )
        assert doc.lead_time is LeadTime.NONE
        assert doc.recurrence is Recurrence.NONE

    def test_known_values_are_case_insensitive(self):
        doc = ReminderDocument.model_validate(
            {"title": "x", "start": "2025-03-31", "status": "active", "reminder": " 1D ", "frequency": "Weekly"}
        )
        assert doc.lead_time is LeadTime.DAY_1
        assert doc.recurrence is Recurrence.WEEKLY


class TestRunReportOut:
    def test_from_report_copies_every_counter(self):
        report = RunReport(started_at=datetime(2025, 1, 1, tzinfo=timezone.utc))
        report.scanned = {"event": 3, "todo": 0}
        report.sent = 2
        report.skipped = 1
        report.finalized = 3
        report.staged = 3
        report.committed = True

        out = RunReportOut.from_report(report)
        assert out.scanned == {"event": 3, "todo": 0}
        assert out.sent == 2
        assert out.skipped == 1
        assert out.committed is True
        assert out.commit_error is None
