from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ..auth import require_trigger_token
from ..orchestrator import ReminderOrchestrator, get_orchestrator
from ..schemas import RunReportOut

router = APIRouter(
    prefix="/api/v1/reminders",
    tags=["reminders"],
)


def _get_orchestrator(orchestrator: ReminderOrchestrator = Depends(get_orchestrator)) -> ReminderOrchestrator:
    """
    Dependency wrapper for the orchestrator to keep signatures clean.
    """
    return orchestrator


# PUBLIC_INTERFACE
@router.post(
    "/run",
    response_model=RunReportOut,
    status_code=status.HTTP_200_OK,
    summary="Run Reminder Scheduler",
    description=(
        "Run one scheduler pass: notify every due calendar event and todo, re-arm recurring "
        "events and commit all status changes in one batch.\n\n"
        "Meant to be called by an external fixed-interval trigger (every 5 minutes). "
        "When INTERNAL_TRIGGER_TOKEN is configured, the X-Internal-Token header must match it.\n\n"
        "A failed commit is reported in the body (committed=false), not as an HTTP error, so "
        "callers that retry on failure do not cause extra notifications."
    ),
    responses={
        200: {"description": "Run finished; see the report for per-item outcomes"},
        403: {"description": "Missing or invalid internal trigger token"},
    },
    dependencies=[Depends(require_trigger_token)],
)
def run_reminders(orchestrator: ReminderOrchestrator = Depends(_get_orchestrator)) -> RunReportOut:
    """
    Trigger a single reminder run and return its report.
    """
    report = orchestrator.run()
    return RunReportOut.from_report(report)
