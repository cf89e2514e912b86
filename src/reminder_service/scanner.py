from __future__ import annotations

import logging
from datetime import datetime
from typing import List

from .models import KIND_PROFILES, ItemKind, ReminderItem
from .repositories import DocumentStore, DueQuery

logger = logging.getLogger(__name__)

DEFAULT_SCAN_LIMIT = 50


class DueItemScanner:
    """
    Finds due, still-pending items of one kind across all users, a bounded
    number at a time. Whatever exceeds the cap keeps its trigger time and is
    picked up by a later run.
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def scan_due(self, kind: ItemKind, now: datetime, limit: int = DEFAULT_SCAN_LIMIT) -> List[ReminderItem]:
        if limit <= 0:
            raise ValueError("scan limit must be positive")
        kind = ItemKind(kind)
        query = DueQuery(
            kind=kind,
            now=now,
            status=KIND_PROFILES[kind].eligible_status,
            limit=limit,
        )
        items = self._store.find_due(query)
        if items:
            logger.info("Found %d due %s reminder(s)", len(items), kind.value)
        else:
            logger.info("No due %s reminders", kind.value)
        return items
