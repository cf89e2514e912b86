from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache
from threading import RLock
from typing import Dict, List, Optional, Sequence

from firebase_admin import exceptions as firebase_exceptions
from firebase_admin import messaging

from .exceptions import DeliveryError
from .models import DeliveryReport
from .settings import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PushMessage:
    tokens: List[str]
    title: str
    body: str
    data: Dict[str, str]


# PUBLIC_INTERFACE
class PushSender(ABC):
    """Abstract push transport: one multi-recipient send per call."""

    @abstractmethod
    def send_to_tokens(
        self, tokens: Sequence[str], title: str, body: str, data: Dict[str, str]
    ) -> DeliveryReport:
        """
        Send one notification to every token.

        Raises:
            DeliveryError: when the transport fails the request as a whole.
        """


class RecordingPushSender(PushSender):
    """
    Transport used by the memory backend: messages are kept in order and
    logged instead of leaving the process. Every token counts as delivered.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._messages: List[PushMessage] = []

    @property
    def messages(self) -> List[PushMessage]:
        with self._lock:
            return list(self._messages)

    def send_to_tokens(
        self, tokens: Sequence[str], title: str, body: str, data: Dict[str, str]
    ) -> DeliveryReport:
        message = PushMessage(tokens=list(tokens), title=title, body=body, data=dict(data))
        with self._lock:
            self._messages.append(message)
        logger.info("Recorded push %r to %d token(s)", title, len(message.tokens))
        return DeliveryReport(success_count=len(message.tokens), failure_count=0)


class FcmPushSender(PushSender):
    """
    Firebase Cloud Messaging transport built on firebase-admin's multicast API.
    """

    def __init__(self, app: Optional[object] = None) -> None:
        self._app = app

    def send_to_tokens(
        self, tokens: Sequence[str], title: str, body: str, data: Dict[str, str]
    ) -> DeliveryReport:
        message = messaging.MulticastMessage(
            notification=messaging.Notification(title=title, body=body),
            # FCM data payloads only carry string values
            data={k: str(v) for k, v in data.items()},
            tokens=list(tokens),
        )
        try:
            response = messaging.send_each_for_multicast(message, app=self._app)
        except (firebase_exceptions.FirebaseError, ValueError) as exc:
            raise DeliveryError(f"FCM multicast failed: {exc}") from exc

        if response.failure_count:
            failed = [
                tokens[i] for i, r in enumerate(response.responses) if not r.success
            ]
            logger.warning("FCM rejected %d of %d token(s): %s", len(failed), len(tokens), failed)
        return DeliveryReport(success_count=response.success_count, failure_count=response.failure_count)


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_push_sender() -> PushSender:
    """
    Return the configured push transport.
    - memory: RecordingPushSender
    - firestore: FcmPushSender bound to the shared firebase app
    """
    settings = get_settings()
    if settings.persistence_backend == "firestore":
        from .db import get_firebase_app

        return FcmPushSender(get_firebase_app())
    return RecordingPushSender()
