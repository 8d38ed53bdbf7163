"""
Error types raised by the memory bank.

Failures before the first store mutation (extraction, embedding, retrieval,
decision) are all-or-nothing. Failures while applying merge actions are not:
whatever was committed before the failure stays committed, and is reported on
the exception as ``applied``.
"""


class MemoryBankError(Exception):
    """Base class for all memory bank errors."""

    def __init__(self, message: str, applied: list | None = None):
        super().__init__(message)
        # ADD/UPDATE results committed before the failure
        self.applied = list(applied or [])


class CollaboratorError(MemoryBankError):
    """An extraction, decision or embedding call failed or returned garbage."""

    def __init__(self, service: str, message: str, applied: list | None = None):
        super().__init__(f"{service}: {message}", applied=applied)
        self.service = service


class StoreError(MemoryBankError):
    """The similarity store failed for a reason other than a missing record."""


class RecordNotFound(StoreError):
    """A store operation targeted a record id that does not exist."""

    def __init__(self, record_id: str):
        super().__init__(f"Memory record {record_id!r} not found")
        self.record_id = record_id


class ReferenceNotFound(MemoryBankError):
    """
    A merge action referenced a temporary id that was never issued in this
    call, or an UPDATE resolved to a record the store no longer has.
    """

    def __init__(
        self,
        reference: int | None,
        record_id: str | None = None,
        applied: list | None = None,
    ):
        if record_id is None:
            message = f"Temporary reference {reference!r} was not issued for this call"
        else:
            message = (
                f"Temporary reference {reference!r} resolved to {record_id!r}, "
                f"which no longer exists"
            )
        super().__init__(message, applied=applied)
        self.reference = reference
        self.record_id = record_id
