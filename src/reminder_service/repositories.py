from __future__ import annotations

from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, replace
from datetime import datetime
from functools import lru_cache
from threading import RLock
from typing import Dict, List, Optional, Sequence, Tuple

from .exceptions import CommitError
from .models import ItemKind, Mutation, ReminderItem, ReminderStatus
from .settings import get_settings


@dataclass(frozen=True)
class DueQuery:
    """
    Conjunctive due-item predicate: next_trigger_time <= now AND status == status.
    """
    kind: ItemKind
    now: datetime
    status: ReminderStatus
    limit: int = 50


# PUBLIC_INTERFACE
class DocumentStore(ABC):
    """Abstract contract of the document store holding reminder items across all users."""

    @abstractmethod
    def find_due(self, query: DueQuery) -> List[ReminderItem]:
        """
        Return at most query.limit items of query.kind, across all owners, whose
        next_trigger_time <= query.now and whose status == query.status.

        Raises:
            StoreError: when the query cannot be answered.
        """

    @abstractmethod
    def batch_commit(self, mutations: Sequence[Mutation]) -> None:
        """
        Apply all mutations atomically: either every one is written or none is.

        Raises:
            CommitError: when the batch could not be applied.
        """

    def take_rejected(self) -> List[Mutation]:
        """
        Return and forget the terminal mutations staged for due documents that
        find_due could not parse. Committing them takes those documents out of
        the due set so they cannot occupy the scan limit on every run.
        """
        return []


# PUBLIC_INTERFACE
class TokenRegistry(ABC):
    """Read-only view of the delivery tokens registered by each user."""

    @abstractmethod
    def tokens_for_user(self, user_id: str) -> List[str]:
        """Return every delivery token registered for user_id (possibly none)."""


class InMemoryDocumentStore(DocumentStore):
    """
    Thread-safe in-memory store suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[Tuple[ItemKind, str, str], ReminderItem] = {}

    def add(self, item: ReminderItem) -> ReminderItem:
        with self._lock:
            self._items[item.key] = item
        return item

    def get(self, kind: ItemKind, owner_id: str, item_id: str) -> Optional[ReminderItem]:
        with self._lock:
            return self._items.get((ItemKind(kind), owner_id, item_id))

    def all(self) -> List[ReminderItem]:
        with self._lock:
            return list(self._items.values())

    def find_due(self, query: DueQuery) -> List[ReminderItem]:
        with self._lock:
            due = [
                item
                for item in self._items.values()
                if item.kind is query.kind
                and item.next_trigger_time is not None
                and item.next_trigger_time <= query.now
                and item.status is query.status
            ]
        # Oldest trigger first, so a capped scan drains the backlog in order
        due.sort(key=lambda it: (it.next_trigger_time, it.owner_id, it.id))
        return due[: max(query.limit, 0)]

    def batch_commit(self, mutations: Sequence[Mutation]) -> None:
        with self._lock:
            missing = [m.key for m in mutations if m.key not in self._items]
            if missing:
                raise CommitError(f"Cannot update missing reminder documents: {missing}")
            for m in mutations:
                current = self._items[m.key]
                self._items[m.key] = replace(
                    current, status=m.status, next_trigger_time=m.next_trigger_time
                )


class InMemoryTokenRegistry(TokenRegistry):
    """
    Thread-safe in-memory token registry. Registration order is preserved and
    duplicate tokens are ignored.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._tokens: Dict[str, List[str]] = defaultdict(list)

    def register(self, user_id: str, token: str) -> None:
        with self._lock:
            if token not in self._tokens[user_id]:
                self._tokens[user_id].append(token)

    def tokens_for_user(self, user_id: str) -> List[str]:
        with self._lock:
            return list(self._tokens.get(user_id, []))


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_store() -> DocumentStore:
    """
    Return the configured document store based on settings.
    - memory: InMemoryDocumentStore
    - firestore: FirestoreDocumentStore (requires firebase-admin credentials)
    """
    settings = get_settings()
    if settings.persistence_backend == "firestore":
        from .db import FirestoreDocumentStore, get_firestore_client

        return FirestoreDocumentStore(get_firestore_client())
    return InMemoryDocumentStore()


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_token_registry() -> TokenRegistry:
    """Return the configured token registry, matching the store backend."""
    settings = get_settings()
    if settings.persistence_backend == "firestore":
        from .db import FirestoreTokenRegistry, get_firestore_client

        return FirestoreTokenRegistry(get_firestore_client())
    return InMemoryTokenRegistry()
