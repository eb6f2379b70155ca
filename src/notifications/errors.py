"""Exceptions raised across the notification pipeline."""


class OperationCancelled(Exception):
    """The caller's cancellation signal was observed mid-operation.

    Never converted into a delivery result: a cancelled delivery leaves its
    queue message unsettled so the transport redelivers it.
    """


class MessageDeserializationError(ValueError):
    """A queue payload could not be read as a notification message."""


class ConcurrencyConflictError(Exception):
    """A write was based on an aggregate version that another writer has since replaced."""

    def __init__(self, entity_id, expected_version, detail=""):
        self.entity_id = entity_id
        self.expected_version = expected_version
        super().__init__(detail or f"Version conflict for {entity_id}: expected {expected_version}")
