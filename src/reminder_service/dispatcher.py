from __future__ import annotations

import logging
from typing import Dict, Tuple

from .exceptions import DeliveryError
from .models import DeliveryOutcome, DeliveryStatus, ItemKind, ReminderItem
from .push import PushSender
from .repositories import TokenRegistry

logger = logging.getLogger(__name__)

UNASSIGNED = "Unassigned"


# PUBLIC_INTERFACE
def build_message(item: ReminderItem) -> Tuple[str, str, Dict[str, str]]:
    """
    Return (title, body, data) of the push notification for an item.

    The data payload lets the client deep-link: targetView names the screen and
    itemId the document to open.
    """
    if item.kind is ItemKind.EVENT:
        title = f"Reminder: {item.title}"
        body = f"Your event '{item.title}' is coming up!"
    else:
        responsible = item.responsible or UNASSIGNED
        title = f"Pending task: {item.title}"
        body = f"The task '{item.title}' ({responsible}) is due on {item.anchor_time:%Y-%m-%d}."
    data = {"targetView": item.profile.target_view, "itemId": item.id}
    return title, body, data


class NotificationDispatcher:
    """
    Sends an item's reminder to every device its owner registered.
    """

    def __init__(self, tokens: TokenRegistry, sender: PushSender) -> None:
        self._tokens = tokens
        self._sender = sender

    def notify(self, item: ReminderItem) -> DeliveryOutcome:
        """
        Notify the owner of item.

        No registered tokens is a skip, not an error. Transport failures are
        logged and reported as FAILED; partially rejected batches are still SENT.
        Token lookup errors propagate to the caller.
        """
        tokens = self._tokens.tokens_for_user(item.owner_id)
        if not tokens:
            logger.info("No delivery tokens for user %s; skipping %s %s", item.owner_id, item.kind.value, item.id)
            return DeliveryOutcome(status=DeliveryStatus.SKIPPED, reason="no recipients")

        title, body, data = build_message(item)
        try:
            report = self._sender.send_to_tokens(tokens, title, body, data)
        except DeliveryError as exc:
            logger.error("Failed to send %s %s to user %s: %s", item.kind.value, item.id, item.owner_id, exc)
            return DeliveryOutcome(
                status=DeliveryStatus.FAILED,
                recipients=len(tokens),
                failure_count=len(tokens),
                reason=str(exc),
            )

        logger.info(
            "Notification for %s %s sent to %d device(s) of user %s (%d ok, %d failed)",
            item.kind.value,
            item.id,
            len(tokens),
            item.owner_id,
            report.success_count,
            report.failure_count,
        )
        return DeliveryOutcome(
            status=DeliveryStatus.SENT,
            recipients=len(tokens),
            success_count=report.success_count,
            failure_count=report.failure_count,
        )
