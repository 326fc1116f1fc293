"""Append-only enforcement for history and audit records using SQLAlchemy events."""

import logging

from sqlalchemy import event

from fieldbook.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

_registered = False


class ImmutabilityViolationError(ValidationError):
    """Raised when attempting to modify an append-only record."""

    def __init__(self, model_name: str, operation: str, record_id: str):
        self.model_name = model_name
        self.operation = operation
        self.record_id = record_id
        super().__init__(
            f"Immutability violation: Cannot {operation} {model_name} record {record_id}. "
            "History and audit records are append-only.",
            code="IMMUTABLE_RECORD",
        )


def _guard(model: type, operation: str) -> None:
    model_name = model.__name__

    def prevent(mapper, connection, target):
        logger.error(
            "IMMUTABILITY_VIOLATION: attempted %s on %s record_id=%s",
            operation,
            model_name,
            target.id,
        )
        raise ImmutabilityViolationError(model_name, operation, str(target.id))

    event.listen(model, f"before_{operation.lower()}", prevent)


def register_immutability_enforcement() -> None:
    """Register SQLAlchemy event listeners for append-only tables.

    Must be called after models are imported but before session use.
    Safe to call more than once.
    """
    global _registered
    if _registered:
        return

    from fieldbook.models.admin import AuditLog
    from fieldbook.models.history import BookingHistory

    for model in (BookingHistory, AuditLog):
        _guard(model, "UPDATE")
        _guard(model, "DELETE")

    _registered = True
    logger.info("Immutability enforcement registered for history and audit records")
