from __future__ import annotations

import logging
import time
from datetime import datetime
from functools import lru_cache
from typing import Callable, List, Optional

from .dispatcher import NotificationDispatcher
from .exceptions import CommitError
from .models import (
    DeliveryOutcome,
    DeliveryStatus,
    ItemKind,
    Mutation,
    ReminderItem,
    ReminderStatus,
    RunReport,
)
from .push import get_push_sender
from .recurrence import compute_next_trigger
from .repositories import DocumentStore, get_store, get_token_registry
from .scanner import DEFAULT_SCAN_LIMIT, DueItemScanner
from .settings import get_settings
from .utils import utcnow

logger = logging.getLogger(__name__)

SCAN_ORDER = (ItemKind.EVENT, ItemKind.TODO)


# PUBLIC_INTERFACE
def classify(item: ReminderItem, now: datetime) -> Mutation:
    """
    Decide the state transition of an item whose reminder was just attempted.

    - todos and non-recurring events: status 'sent', no next trigger
    - recurring events: stay 'active' with the next trigger, or 'completed'
      when the next occurrence is not in the future
    """
    if not item.is_recurring:
        return Mutation.for_item(item, ReminderStatus.SENT, None)

    next_trigger = compute_next_trigger(item.anchor_time, item.recurrence, item.lead_time, now)
    if next_trigger is None:
        return Mutation.for_item(item, ReminderStatus.COMPLETED, None)
    return Mutation.for_item(item, ReminderStatus.ACTIVE, next_trigger)


class ReminderOrchestrator:
    """
    One scheduler run: scan both kinds, notify every due item, stage its
    transition and commit all transitions in a single batch.

    Nothing is kept between runs; the items' own status and trigger time are
    the only state. Notifications are sent before the commit, so a failed
    commit leaves items due and they may be notified again (at-least-once).
    Concurrent runs are not excluded and can notify the same item twice.
    """

    def __init__(
        self,
        scanner: DueItemScanner,
        dispatcher: NotificationDispatcher,
        store: DocumentStore,
        scan_limit: int = DEFAULT_SCAN_LIMIT,
        deadline_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = utcnow,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._scanner = scanner
        self._dispatcher = dispatcher
        self._store = store
        self._scan_limit = scan_limit
        self._deadline_seconds = deadline_seconds
        self._clock = clock
        self._monotonic = monotonic

    def run(self, now: Optional[datetime] = None) -> RunReport:
        now = now or self._clock()
        started = self._monotonic()
        report = RunReport(started_at=now)
        mutations: List[Mutation] = []
        logger.info("Starting reminder run at %s", now.isoformat())
        # Rejections left over from scans outside a run may be stale
        self._store.take_rejected()

        for kind in SCAN_ORDER:
            try:
                items = self._scanner.scan_due(kind, now, self._scan_limit)
            except Exception:
                logger.exception("Scan of due %s reminders failed", kind.value)
                report.failed_scans.append(kind.value)
                continue
            report.scanned[kind.value] = len(items)

            for item in items:
                if self._deadline_passed(started):
                    report.deferred += 1
                    continue
                try:
                    mutations.append(self.process_item(item, now, report))
                except Exception:
                    logger.exception("Processing %s %s failed; it stays due", item.kind.value, item.id)
                    report.failed_items += 1

        if report.deferred:
            logger.warning("Run deadline reached; %d reminder(s) deferred to the next run", report.deferred)

        rejected = self._store.take_rejected()
        if rejected:
            report.rejected = len(rejected)
            mutations.extend(rejected)

        report.staged = len(mutations)
        self._commit(mutations, report)
        return report

    def process_item(self, item: ReminderItem, now: datetime, report: Optional[RunReport] = None) -> Mutation:
        """
        Notify one item and return its staged transition. The transition is
        produced even when the notification could not be delivered.
        """
        try:
            outcome = self._dispatcher.notify(item)
        except Exception as exc:
            logger.warning("Dispatch of %s %s failed: %s", item.kind.value, item.id, exc)
            outcome = DeliveryOutcome(status=DeliveryStatus.FAILED, reason=str(exc))

        mutation = classify(item, now)
        if report is not None:
            self._count(report, outcome, mutation)
        return mutation

    def _count(self, report: RunReport, outcome: DeliveryOutcome, mutation: Mutation) -> None:
        if outcome.status is DeliveryStatus.SENT:
            report.sent += 1
        elif outcome.status is DeliveryStatus.SKIPPED:
            report.skipped += 1
        else:
            report.delivery_failures += 1

        if mutation.status is ReminderStatus.ACTIVE:
            report.rearmed += 1
        else:
            report.finalized += 1

    def _deadline_passed(self, started: float) -> bool:
        if self._deadline_seconds is None:
            return False
        return self._monotonic() - started >= self._deadline_seconds

    def _commit(self, mutations: List[Mutation], report: RunReport) -> None:
        if not mutations:
            report.committed = True
            logger.info("Reminder run finished; nothing to commit")
            return
        try:
            self._store.batch_commit(mutations)
        except CommitError as exc:
            report.commit_error = str(exc)
            logger.error("Commit of %d reminder update(s) failed; items stay due: %s", len(mutations), exc)
            return
        report.committed = True
        logger.info(
            "Reminder run committed %d update(s) (%d re-armed, %d finalized)",
            len(mutations),
            report.rearmed,
            report.finalized,
        )


# PUBLIC_INTERFACE
def build_orchestrator(
    store: DocumentStore,
    dispatcher: NotificationDispatcher,
    scan_limit: int = DEFAULT_SCAN_LIMIT,
    deadline_seconds: Optional[float] = None,
    clock: Callable[[], datetime] = utcnow,
    monotonic: Callable[[], float] = time.monotonic,
) -> ReminderOrchestrator:
    """Assemble an orchestrator around explicit collaborators."""
    return ReminderOrchestrator(
        scanner=DueItemScanner(store),
        dispatcher=dispatcher,
        store=store,
        scan_limit=scan_limit,
        deadline_seconds=deadline_seconds,
        clock=clock,
        monotonic=monotonic,
    )


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_orchestrator() -> ReminderOrchestrator:
    """
    Return the process-wide orchestrator wired to the configured backends.
    """
    settings = get_settings()
    return build_orchestrator(
        store=get_store(),
        dispatcher=NotificationDispatcher(get_token_registry(), get_push_sender()),
        scan_limit=settings.scan_limit,
        deadline_seconds=settings.run_deadline_seconds,
    )
