# Overview: Invoice lifecycle operations; pricing, stock, customer credit, state changes and audit.

"""
Invoice Service

WHY: Every operation that changes money or stock goes through here so that
the invoice, the item stock, the customer's outstanding credit and the
audit trail stay consistent with each other.

DESIGN PRINCIPLES:
- Stateless: every call receives the acting user, the store and the policy
  (or the defaults); nothing is remembered between calls.
- Validate first: all input checks run before the first store write, so a
  ValidationError never leaves partial state behind.
- All-or-nothing writes: the writes of one operation run inside a
  UnitOfWork and commit together.
- Optimistic concurrency: a version conflict on any record re-runs the
  whole operation from a fresh read (run_with_retry).
- One audit entry per operation.

OPERATIONS:
    create_invoice          stock -qty per line, credit +balance_due, invoice, audit
    record_payment          invoice balance/paid, credit -amount, audit
    request_cancellation    active -> pending_cancel, audit
    approve_cancellation    pending_cancel -> cancelled, stock +qty, credit -balance_due, audit
    reject_cancellation     pending_cancel -> active, audit
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from flask import current_app, has_app_context

from ..errors import InvalidTransitionError, ValidationError
from ..money import ZERO, format_money, quantity_str, to_money
from ..policy import Actor, AccessPolicy, DEFAULT_POLICY
from billmaster.time_utils import utcnow
from .audit_service import (
    AUDIT_APPROVE_CANCELLATION,
    AUDIT_CREATE_INVOICE,
    AUDIT_PAYMENT_RECEIVED,
    AUDIT_REJECT_CANCELLATION,
    AUDIT_REQUEST_CANCELLATION,
    record_audit,
)
from .concurrency import run_with_retry
from .credit_terms import PAYMENT_CREDIT, resolve_credit_terms, validate_payment_mode
from .customer_ledger import apply_credit_delta, validate_payment_amount
from .entity_store import get_store
from .invoice_state import (
    STATUS_ACTIVE,
    STATUS_CANCELLED,
    STATUS_PENDING_CANCEL,
    require_transition,
    validate_status,
)
from .pricing_service import LineItem, calculate_totals, validate_discount, validate_lines
from .settings_service import invoice_prefix as settings_invoice_prefix
from .stock_ledger import apply_stock_delta, ensure_stock_available
from .unit_of_work import UnitOfWork


logger = logging.getLogger(__name__)


@dataclass
class InvoiceRequest:
    """What the billing form collects before an invoice is created."""

    customer_id: int | None
    lines: list[LineItem] = field(default_factory=list)
    payment_mode: str = "cash"
    discount: Decimal = ZERO
    apply_rounding: bool = True
    credit_term: str | None = None
    amount_paid: Decimal = ZERO

    @classmethod
    def from_payload(cls, data: dict) -> "InvoiceRequest":
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON payload")

        customer_id = data.get("customer_id")
        if customer_id is not None:
            try:
                customer_id = int(customer_id)
            except (TypeError, ValueError):
                raise ValidationError("customer_id must be an integer")

        raw_lines = data.get("items")
        if raw_lines is None:
            raw_lines = data.get("lines") or []
        if not isinstance(raw_lines, list):
            raise ValidationError("items must be a list")

        apply_rounding = data.get("apply_rounding", True)
        if not isinstance(apply_rounding, bool):
            raise ValidationError("apply_rounding must be true or false")

        return cls(
            customer_id=customer_id,
            lines=[LineItem.from_dict(line, i) for i, line in enumerate(raw_lines, start=1)],
            payment_mode=data.get("payment_mode") or "cash",
            discount=to_money(data.get("discount") or 0, "discount"),
            apply_rounding=apply_rounding,
            credit_term=data.get("credit_term"),
            amount_paid=to_money(data.get("amount_paid") or 0, "amount_paid"),
        )


def _allow_negative_stock(value: bool | None) -> bool:
    if value is not None:
        return value
    if has_app_context():
        return bool(current_app.config.get("ALLOW_NEGATIVE_STOCK", True))
    return True


def next_invoice_number(store, prefix: str) -> str:
    """"{prefix}-{N}" where N is the number of existing invoices plus one."""
    return f"{prefix}-{store.count('Invoice') + 1}"


# =============================================================================
# INVOICE CREATION
# =============================================================================

def create_invoice(
    request: InvoiceRequest,
    actor: Actor,
    *,
    store=None,
    policy: AccessPolicy | None = None,
    allow_negative_stock: bool | None = None,
    prefix: str | None = None,
    now: datetime | None = None,
):
    """
    Price and issue an invoice, taking stock out and adding any balance due
    to the customer's outstanding credit.

    Args:
        request: customer, lines (item_id, quantity, rate), payment choices
        actor: acting user (recorded on the invoice and in the audit entry)
        store: entity store (defaults to the SQLAlchemy store)
        policy: access policy (requires CREATE_INVOICE)
        allow_negative_stock: override the ALLOW_NEGATIVE_STOCK config
        prefix: override the invoice prefix from shop settings
        now: creation instant (defaults to utcnow); credit due dates count from it

    Returns:
        The created Invoice

    Raises:
        PermissionDeniedError, ValidationError, NotFoundError,
        PartialFailureError, StoreError
    """
    store = store or get_store()
    policy = policy or DEFAULT_POLICY
    policy.require(actor, "CREATE_INVOICE")
    allow_negative = _allow_negative_stock(allow_negative_stock)

    if request.customer_id is None:
        raise ValidationError("Please select a customer")
    if not request.lines:
        raise ValidationError("Please add at least one item")
    validate_payment_mode(request.payment_mode)

    def _op():
        customer = store.get("Customer", request.customer_id)
        lines = [line.with_snapshot(store.get("Item", line.item_id)) for line in request.lines]
        validate_lines(lines)

        totals = calculate_totals(lines, request.discount, request.apply_rounding)
        validate_discount(totals.discount, totals.subtotal)

        if not allow_negative:
            ensure_stock_available(store, lines)

        created_at = now or utcnow()
        terms = resolve_credit_terms(
            request.payment_mode,
            request.credit_term,
            totals.grand_total,
            request.amount_paid,
            reference=created_at,
        )
        invoice_number = next_invoice_number(store, prefix or settings_invoice_prefix(store))

        with UnitOfWork(store, "create_invoice") as uow:
            for line in lines:
                uow.step(
                    f"deduct_stock[item {line.item_id}]",
                    apply_stock_delta, store, line.item_id, -line.quantity,
                )

            if terms.balance_due > 0:
                uow.step(
                    "add_customer_credit",
                    apply_credit_delta, store, customer.id, terms.balance_due,
                )

            invoice = uow.step("create_invoice", store.create, "Invoice", {
                "invoice_number": invoice_number,
                "customer_id": customer.id,
                "customer_name": customer.name,
                "customer_phone": customer.phone,
                "customer_address": customer.full_address,
                "items": [line.to_dict() for line in lines],
                "subtotal": totals.subtotal,
                "discount": totals.discount,
                "rounding_off": totals.rounding_off,
                "grand_total": totals.grand_total,
                "payment_mode": terms.payment_mode,
                "credit_term": terms.credit_term,
                "due_date": terms.due_date,
                "amount_paid": terms.amount_paid,
                "balance_due": terms.balance_due,
                "status": STATUS_ACTIVE,
                "created_by": actor.email,
                "created_date": created_at,
            })

            uow.step(
                "audit",
                record_audit, store, actor, AUDIT_CREATE_INVOICE,
                f"Invoice {invoice_number} created for {customer.name}, "
                f"Amount: {format_money(totals.grand_total)}",
                invoice_number=invoice_number,
            )

        logger.info("Created invoice %s for customer %s (%s)", invoice_number, customer.id, terms.payment_mode)
        return invoice

    return run_with_retry(_op, rollback=store.rollback)


# =============================================================================
# PAYMENTS
# =============================================================================

def record_payment(
    invoice_id: int,
    amount,
    actor: Actor,
    *,
    store=None,
    policy: AccessPolicy | None = None,
):
    """
    Record a payment against a credit invoice.

    balance_due goes down and amount_paid up by the amount; the customer's
    outstanding credit goes down by the same amount (floored at zero).

    Raises:
        ValidationError: amount not in (0, balance_due], or not a credit invoice
        InvalidTransitionError: invoice is cancelled
        NotFoundError: invoice or customer missing
    """
    store = store or get_store()
    policy = policy or DEFAULT_POLICY
    policy.require(actor, "RECORD_PAYMENT")
    amount = to_money(amount, "amount")

    def _op():
        invoice = store.get("Invoice", invoice_id)

        if invoice.status == STATUS_CANCELLED:
            raise InvalidTransitionError(
                f"Cannot record payment on cancelled invoice {invoice.invoice_number}",
                details={"invoice_number": invoice.invoice_number, "status": invoice.status},
            )
        if invoice.payment_mode != PAYMENT_CREDIT:
            raise ValidationError(
                f"Invoice {invoice.invoice_number} was paid by {invoice.payment_mode}; "
                "payments can only be recorded against credit invoices"
            )

        payment = validate_payment_amount(invoice, amount)
        new_balance = to_money(invoice.balance_due) - payment
        new_paid = to_money(invoice.amount_paid) + payment

        with UnitOfWork(store, "record_payment") as uow:
            uow.step("update_invoice", store.update, "Invoice", invoice.id, {
                "balance_due": new_balance,
                "amount_paid": new_paid,
            })
            uow.step(
                "reduce_customer_credit",
                apply_credit_delta, store, invoice.customer_id, -payment,
            )
            uow.step(
                "audit",
                record_audit, store, actor, AUDIT_PAYMENT_RECEIVED,
                f"Payment received for {invoice.invoice_number}: {format_money(payment)}",
                invoice_number=invoice.invoice_number,
            )
        return invoice

    return run_with_retry(_op, rollback=store.rollback)


# =============================================================================
# CANCELLATION WORKFLOW
# =============================================================================

def request_cancellation(
    invoice_id: int,
    reason: str | None,
    actor: Actor,
    *,
    store=None,
    policy: AccessPolicy | None = None,
):
    """active -> pending_cancel; the reason is kept for the approver."""
    store = store or get_store()
    policy = policy or DEFAULT_POLICY
    policy.require(actor, "REQUEST_CANCELLATION")
    reason = (reason or "").strip() or None

    def _op():
        invoice = store.get("Invoice", invoice_id)
        require_transition(invoice, STATUS_PENDING_CANCEL)

        with UnitOfWork(store, "request_cancellation") as uow:
            uow.step("mark_pending_cancel", store.update, "Invoice", invoice.id, {
                "status": STATUS_PENDING_CANCEL,
                "cancellation_reason": reason,
                "cancellation_requested_by": actor.email,
            })
            uow.step(
                "audit",
                record_audit, store, actor, AUDIT_REQUEST_CANCELLATION,
                f"Cancellation requested for {invoice.invoice_number}. "
                f"Reason: {reason or 'No reason provided'}",
                invoice_number=invoice.invoice_number,
            )
        return invoice

    return run_with_retry(_op, rollback=store.rollback)


def approve_cancellation(
    invoice_id: int,
    actor: Actor,
    *,
    store=None,
    policy: AccessPolicy | None = None,
    now: datetime | None = None,
):
    """
    pending_cancel -> cancelled.

    In order: mark the invoice cancelled (who/when), put every line's
    quantity back into stock, take any remaining balance_due off the
    customer's outstanding credit, write one audit entry. Any failure rolls
    all of it back.

    Raises:
        InvalidTransitionError: invoice not pending_cancel (including already cancelled)
        PartialFailureError: a later step failed (e.g. an item was deleted);
            nothing was kept
    """
    store = store or get_store()
    policy = policy or DEFAULT_POLICY
    policy.require(actor, "APPROVE_CANCELLATION")

    def _op():
        invoice = store.get("Invoice", invoice_id)
        require_transition(invoice, STATUS_CANCELLED)

        balance_due = to_money(invoice.balance_due or ZERO)
        lines = [LineItem.from_dict(line, i) for i, line in enumerate(invoice.items or [], start=1)]

        with UnitOfWork(store, "approve_cancellation") as uow:
            uow.step("mark_cancelled", store.update, "Invoice", invoice.id, {
                "status": STATUS_CANCELLED,
                "cancelled_by": actor.email,
                "cancelled_date": now or utcnow(),
            })

            for line in lines:
                uow.step(
                    f"restore_stock[item {line.item_id}]",
                    apply_stock_delta, store, line.item_id, line.quantity,
                )

            if balance_due > 0:
                uow.step(
                    "reduce_customer_credit",
                    apply_credit_delta, store, invoice.customer_id, -balance_due,
                )

            restored = ", ".join(
                f"{line.name or line.item_id} +{quantity_str(line.quantity)}" for line in lines
            )
            uow.step(
                "audit",
                record_audit, store, actor, AUDIT_APPROVE_CANCELLATION,
                f"Invoice {invoice.invoice_number} cancellation approved. Stock restored ({restored}).",
                invoice_number=invoice.invoice_number,
            )

        logger.info("Cancelled invoice %s by %s", invoice.invoice_number, actor.email)
        return invoice

    return run_with_retry(_op, rollback=store.rollback)


def reject_cancellation(
    invoice_id: int,
    reason: str | None,
    actor: Actor,
    *,
    store=None,
    policy: AccessPolicy | None = None,
):
    """
    pending_cancel -> active. The rejection reason overwrites the request
    reason; stock and credit are untouched.
    """
    store = store or get_store()
    policy = policy or DEFAULT_POLICY
    policy.require(actor, "APPROVE_CANCELLATION")

    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("Please provide a rejection reason")

    def _op():
        invoice = store.get("Invoice", invoice_id)
        require_transition(invoice, STATUS_ACTIVE)

        with UnitOfWork(store, "reject_cancellation") as uow:
            uow.step("mark_active", store.update, "Invoice", invoice.id, {
                "status": STATUS_ACTIVE,
                "cancellation_reason": reason,
            })
            uow.step(
                "audit",
                record_audit, store, actor, AUDIT_REJECT_CANCELLATION,
                f"Invoice {invoice.invoice_number} cancellation rejected. Reason: {reason}",
                invoice_number=invoice.invoice_number,
            )
        return invoice

    return run_with_retry(_op, rollback=store.rollback)


# =============================================================================
# QUERIES
# =============================================================================

def get_invoice(invoice_id: int, *, store=None):
    store = store or get_store()
    return store.get("Invoice", invoice_id)


def list_invoices(
    *,
    store=None,
    status: str | None = None,
    payment_mode: str | None = None,
    customer_id: int | None = None,
    limit: int | None = None,
) -> list:
    """Newest first, optionally narrowed by status, payment mode or customer."""
    store = store or get_store()
    criteria = {}
    if status:
        validate_status(status)
        criteria["status"] = status
    if payment_mode:
        validate_payment_mode(payment_mode)
        criteria["payment_mode"] = payment_mode
    if customer_id is not None:
        criteria["customer_id"] = customer_id
    return store.filter("Invoice", sort="-created_date", limit=limit, **criteria)


def pending_cancellations(*, store=None) -> list:
    return list_invoices(store=store, status=STATUS_PENDING_CANCEL)
