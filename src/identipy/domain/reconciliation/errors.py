"""Failure modes of identity reconciliation."""

from __future__ import annotations


class ReconciliationError(RuntimeError):
    """Base class for errors raised while reconciling a contact fragment."""


class InvalidInputError(ReconciliationError, ValueError):
    """Raised when a fragment carries neither an email nor a phone number."""


class StoreUnavailableError(ReconciliationError):
    """Raised when the backing contact store fails to read or write.

    ``retryable`` marks failures (connectivity, timeouts, lock contention) where
    re-running the whole reconciliation is expected to succeed.
    """

    def __init__(self, message: str, *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class InconsistentClusterError(ReconciliationError):
    """Raised when a contact cluster violates its structural invariants."""

    def __init__(self, message: str, *, contact_ids: tuple[int, ...] = ()) -> None:
        super().__init__(message)
        self.contact_ids = contact_ids
