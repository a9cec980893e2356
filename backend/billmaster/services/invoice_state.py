# Overview: Invoice status values and the legal transitions between them.

"""
Invoice State Machine

STATES:
    active          issued invoice (initial)
    pending_cancel  cancellation requested, waiting for an admin
    cancelled       terminal, stock and credit restored

TRANSITIONS:
    active         -> pending_cancel   request cancellation
    pending_cancel -> cancelled        approve (restores stock and credit, once)
    pending_cancel -> active           reject (no stock or credit change)

Nothing leaves cancelled. Same-state "transitions" are not allowed, so
approving or rejecting twice fails instead of repeating side effects.
"""

from __future__ import annotations

from ..errors import InvalidTransitionError, ValidationError


STATUS_ACTIVE = "active"
STATUS_PENDING_CANCEL = "pending_cancel"
STATUS_CANCELLED = "cancelled"

VALID_STATUSES = {STATUS_ACTIVE, STATUS_PENDING_CANCEL, STATUS_CANCELLED}

TRANSITIONS: dict[str, set[str]] = {
    STATUS_ACTIVE: {STATUS_PENDING_CANCEL},
    STATUS_PENDING_CANCEL: {STATUS_CANCELLED, STATUS_ACTIVE},
    STATUS_CANCELLED: set(),
}


def validate_status(status: str) -> None:
    if status not in VALID_STATUSES:
        raise ValidationError(
            f"Invalid status '{status}'. Must be one of: {', '.join(sorted(VALID_STATUSES))}"
        )


def can_transition(from_status: str, to_status: str) -> bool:
    validate_status(from_status)
    validate_status(to_status)
    return to_status in TRANSITIONS[from_status]


def require_transition(invoice, to_status: str) -> None:
    """
    Raise InvalidTransitionError unless invoice.status -> to_status is legal.
    """
    if not can_transition(invoice.status, to_status):
        raise InvalidTransitionError(
            f"Cannot move invoice {invoice.invoice_number} from {invoice.status} to {to_status}",
            details={
                "invoice_number": invoice.invoice_number,
                "status": invoice.status,
                "requested_status": to_status,
            },
        )
