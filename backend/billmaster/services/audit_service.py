# Overview: Audit sink; one append-only entry per state-changing operation.

from __future__ import annotations

from ..policy import Actor


AUDIT_CREATE_INVOICE = "Create Invoice"
AUDIT_PAYMENT_RECEIVED = "Payment Received"
AUDIT_REQUEST_CANCELLATION = "Request Invoice Cancellation"
AUDIT_APPROVE_CANCELLATION = "Approve Invoice Cancellation"
AUDIT_REJECT_CANCELLATION = "Reject Invoice Cancellation"
AUDIT_UPDATE_SETTINGS = "Update Settings"
AUDIT_CREATE_ITEM = "Create Item"
AUDIT_UPDATE_ITEM = "Update Item"
AUDIT_DELETE_ITEM = "Delete Item"
AUDIT_CREATE_CATEGORY = "Create Category"
AUDIT_UPDATE_CATEGORY = "Update Category"
AUDIT_DELETE_CATEGORY = "Delete Category"
AUDIT_CREATE_CUSTOMER = "Create Customer"
AUDIT_UPDATE_CUSTOMER = "Update Customer"

AUDIT_ACTIONS = [
    AUDIT_CREATE_INVOICE,
    AUDIT_PAYMENT_RECEIVED,
    AUDIT_REQUEST_CANCELLATION,
    AUDIT_APPROVE_CANCELLATION,
    AUDIT_REJECT_CANCELLATION,
    AUDIT_UPDATE_SETTINGS,
    AUDIT_CREATE_ITEM,
    AUDIT_UPDATE_ITEM,
    AUDIT_DELETE_ITEM,
    AUDIT_CREATE_CATEGORY,
    AUDIT_UPDATE_CATEGORY,
    AUDIT_DELETE_CATEGORY,
    AUDIT_CREATE_CUSTOMER,
    AUDIT_UPDATE_CUSTOMER,
]


def record_audit(
    store,
    actor: Actor,
    action: str,
    details: str,
    invoice_number: str | None = None,
):
    """
    Append an audit entry.

    No domain logic here and no updates/deletes of existing entries.
    created_date is assigned by the store (server timestamp).
    """
    return store.create("AuditLog", {
        "action": action,
        "user_email": actor.email,
        "user_role": actor.role,
        "details": details,
        "invoice_number": invoice_number,
    })


def list_audit_entries(
    store,
    *,
    action: str | None = None,
    invoice_number: str | None = None,
    user_email: str | None = None,
    limit: int | None = 200,
) -> list:
    """Newest first, optionally narrowed by action, invoice or user."""
    criteria = {}
    if action:
        criteria["action"] = action
    if invoice_number:
        criteria["invoice_number"] = invoice_number
    if user_email:
        criteria["user_email"] = user_email
    return store.filter("AuditLog", sort="-created_date", limit=limit, **criteria)
