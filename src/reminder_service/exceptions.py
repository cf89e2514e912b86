from __future__ import annotations


class ReminderServiceError(Exception):
    """Base class for errors raised by the reminder service collaborators."""


class StoreError(ReminderServiceError):
    """The document store could not answer a query."""


class CommitError(StoreError):
    """A batch of staged mutations could not be applied. Nothing was written."""


class DeliveryError(ReminderServiceError):
    """The push transport rejected or failed a send request."""
