"""
Error taxonomy shared by the entity store and the workflow engine.

Every error is a local, recoverable condition reported to the immediate
caller. Each class carries a machine-readable ``code`` so outer layers can
report the error kind without matching on class names.
"""

from typing import Any


class PrintFarmError(Exception):
    """Base exception for all PrintFarm domain errors."""

    code = "printfarm_error"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context = context


class InvalidTransitionError(PrintFarmError):
    """Raised when a requested status change is not the defined next step."""

    code = "invalid_transition"


class NoOpTransitionError(PrintFarmError):
    """Raised when a reprint is requested for an item already in the queue."""

    code = "noop_transition"


class UnknownPartError(PrintFarmError):
    """Raised when a part is named that is not associated with the item."""

    code = "unknown_part"


class InactiveReferenceError(PrintFarmError):
    """Raised when attaching a soft-deleted color, part or template."""

    code = "inactive_reference"


class NotReadyError(PrintFarmError):
    """Raised when an aggregate precondition (assembly/pack/ship) fails."""

    code = "not_ready"


class NotFoundError(PrintFarmError):
    """Raised when a referenced entity does not exist."""

    code = "not_found"


class DuplicateKeyError(PrintFarmError):
    """Raised on a uniqueness violation."""

    code = "duplicate_key"


class TransactionConflictError(PrintFarmError):
    """
    Raised when a concurrent writer changed a record first.

    The caller should re-read current state, re-validate and retry.
    """

    code = "transaction_conflict"


class InvalidInputError(PrintFarmError):
    """Raised when a request is structurally invalid for the domain."""

    code = "invalid_input"


class StorageError(PrintFarmError):
    """Raised when the underlying database fails a query."""

    code = "storage_error"
