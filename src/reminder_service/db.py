from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from threading import RLock
from typing import Any, Dict, List, Optional, Sequence

import firebase_admin
from firebase_admin import credentials, firestore
from pydantic import ValidationError

from .exceptions import CommitError, StoreError
from .models import KIND_PROFILES, Mutation, ReminderItem, ReminderStatus
from .repositories import DocumentStore, DueQuery, TokenRegistry
from .schemas import ReminderDocument
from .settings import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Fields:
    next_trigger: str = "nextNotification"
    status: str = "status"
    users: str = "users"
    tokens: str = "fcmTokens"


_FIELDS = _Fields()


# PUBLIC_INTERFACE
def get_firebase_app() -> Any:
    """
    Initialize the Firebase Admin app once per process and return it.

    Uses the service-account file from FIREBASE_CREDENTIALS_PATH when set,
    application default credentials otherwise.
    """
    if not firebase_admin._apps:
        settings = get_settings()
        if settings.firebase_credentials_path:
            cred = credentials.Certificate(settings.firebase_credentials_path)
        else:
            cred = credentials.ApplicationDefault()
        firebase_admin.initialize_app(cred)
        logger.info("Firebase Admin initialized")
    return firebase_admin.get_app()


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_firestore_client() -> Any:
    """Return the process-wide Firestore client."""
    return firestore.client(get_firebase_app())


def owner_from_path(path: str) -> Optional[str]:
    """
    Return the id of the nearest enclosing user document in a slash-separated
    document path, e.g. 'artifacts/app/users/uid-1/calendarEvents/ev-9' -> 'uid-1'.
    """
    segments = path.split("/")
    # Collections sit at even indexes, documents at odd ones
    for i in range(len(segments) - 2, -1, -2):
        if segments[i] == _FIELDS.users and i + 1 < len(segments) - 1:
            return segments[i + 1]
    return None


class FirestoreDocumentStore(DocumentStore):
    """
    Firestore-backed store. Items of one kind live in per-user subcollections
    that share a name, so due items are found with collection-group queries.
    """

    def __init__(self, client: Any) -> None:
        self._client = client
        self._lock = RLock()
        self._rejected: List[Mutation] = []

    def find_due(self, query: DueQuery) -> List[ReminderItem]:
        profile = KIND_PROFILES[query.kind]
        fs_query = (
            self._client.collection_group(profile.collection)
            .where(filter=firestore.FieldFilter(_FIELDS.next_trigger, "<=", query.now))
            .where(filter=firestore.FieldFilter(_FIELDS.status, "==", query.status.value))
            .limit(query.limit)
        )
        try:
            snapshots = list(fs_query.stream())
        except Exception as exc:
            raise StoreError(f"Due query on {profile.collection!r} failed: {exc}") from exc

        items: List[ReminderItem] = []
        for snap in snapshots:
            item = self._to_item(query, snap)
            if item is not None:
                items.append(item)
        return items

    def _to_item(self, query: DueQuery, snap: Any) -> Optional[ReminderItem]:
        path = snap.reference.path
        data: Dict[str, Any] = snap.to_dict() or {}
        owner = owner_from_path(path)
        try:
            document = ReminderDocument.model_validate(data)
            return document.to_item(query.kind, snap.id, owner, ref_path=path)
        except (ValidationError, ValueError) as exc:
            logger.warning("Closing malformed reminder document %s as completed: %s", path, exc)
            with self._lock:
                self._rejected.append(
                    Mutation(
                        kind=query.kind,
                        owner_id=owner or "",
                        item_id=snap.id,
                        status=ReminderStatus.COMPLETED,
                        next_trigger_time=None,
                        ref_path=path,
                    )
                )
            return None

    def take_rejected(self) -> List[Mutation]:
        with self._lock:
            rejected, self._rejected = self._rejected, []
        return rejected

    def _reference(self, mutation: Mutation) -> Any:
        if mutation.ref_path:
            return self._client.document(mutation.ref_path)
        collection = KIND_PROFILES[mutation.kind].collection
        return self._client.document(
            f"{_FIELDS.users}/{mutation.owner_id}/{collection}/{mutation.item_id}"
        )

    def batch_commit(self, mutations: Sequence[Mutation]) -> None:
        if not mutations:
            return
        batch = self._client.batch()
        for m in mutations:
            batch.update(
                self._reference(m),
                {
                    _FIELDS.status: m.status.value,
                    _FIELDS.next_trigger: m.next_trigger_time,
                },
            )
        try:
            batch.commit()
        except Exception as exc:
            raise CommitError(f"Batch commit of {len(mutations)} mutation(s) failed: {exc}") from exc


class FirestoreTokenRegistry(TokenRegistry):
    """
    Tokens are the document ids of users/{uid}/fcmTokens, as written by the web client.
    """

    def __init__(self, client: Any) -> None:
        self._client = client

    def tokens_for_user(self, user_id: str) -> List[str]:
        collection = self._client.collection(f"{_FIELDS.users}/{user_id}/{_FIELDS.tokens}")
        return [snap.id for snap in collection.stream()]
