# Overview: Customer master data; create, edit, look up and search.

"""
Customers Service

Customers are billed by id; invoices snapshot the name, phone and address
at creation time, so later edits never rewrite past invoices.

outstanding_credit is not writable here. It is an accumulator owned by the
customer ledger (invoice creation, payments, approved cancellations).
"""

from __future__ import annotations

from ..errors import ValidationError
from ..policy import Actor, AccessPolicy, DEFAULT_POLICY
from .audit_service import AUDIT_CREATE_CUSTOMER, AUDIT_UPDATE_CUSTOMER, record_audit
from .concurrency import run_with_retry
from .entity_store import get_store
from .unit_of_work import UnitOfWork


# field -> max length
CUSTOMER_TEXT_FIELDS = {
    "name": 255,
    "phone": 32,
    "email": 255,
    "address": 255,
    "city": 128,
    "state": 128,
    "pincode": 16,
    "gstin": 32,
}
CUSTOMER_WRITABLE_FIELDS = set(CUSTOMER_TEXT_FIELDS) | {"credit_eligible"}


def _clean_customer_patch(fields) -> dict:
    if not isinstance(fields, dict):
        raise ValidationError("Invalid JSON payload")
    if "outstanding_credit" in fields:
        raise ValidationError("outstanding_credit is maintained by invoices and payments")
    unknown = set(fields) - CUSTOMER_WRITABLE_FIELDS
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    patch = {}
    for key, value in fields.items():
        if key == "credit_eligible":
            if not isinstance(value, bool):
                raise ValidationError("credit_eligible must be true or false")
            patch[key] = value
            continue
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"{key} must be a string")
        value = value.strip() if value else None
        if value and len(value) > CUSTOMER_TEXT_FIELDS[key]:
            raise ValidationError(f"{key} exceeds max length {CUSTOMER_TEXT_FIELDS[key]}")
        patch[key] = value

    if "name" in patch and not patch["name"]:
        raise ValidationError("Customer name is required")
    if "phone" in patch and not patch["phone"]:
        raise ValidationError("Customer phone is required")
    if patch.get("email") and "@" not in patch["email"]:
        raise ValidationError("email is not a valid address")
    return patch


def list_customers(*, store=None, search: str | None = None) -> list:
    """Customers by name; search matches a fragment of the name or phone."""
    store = store or get_store()
    customers = store.filter("Customer", sort="name")
    if search and search.strip():
        needle = search.strip().lower()
        customers = [
            c for c in customers
            if needle in c.name.lower() or needle in (c.phone or "")
        ]
    return customers


def get_customer(customer_id: int, *, store=None):
    store = store or get_store()
    return store.get("Customer", customer_id)


def create_customer(fields: dict, actor: Actor, *, store=None, policy: AccessPolicy | None = None):
    """
    Add a customer with zero outstanding credit.

    Raises:
        ValidationError: missing name or phone, bad field types or lengths
    """
    store = store or get_store()
    policy = policy or DEFAULT_POLICY
    policy.require(actor, "MANAGE_CUSTOMERS")

    patch = _clean_customer_patch(fields)
    if not patch.get("name"):
        raise ValidationError("Customer name is required")
    if not patch.get("phone"):
        raise ValidationError("Customer phone is required")

    def _op():
        with UnitOfWork(store, "create_customer") as uow:
            customer = uow.step("create_customer", store.create, "Customer", patch)
            uow.step(
                "audit",
                record_audit, store, actor, AUDIT_CREATE_CUSTOMER, f"Customer created: {customer.name}",
            )
        return customer

    return run_with_retry(_op, rollback=store.rollback)


def update_customer(
    customer_id: int,
    fields: dict,
    actor: Actor,
    *,
    store=None,
    policy: AccessPolicy | None = None,
):
    store = store or get_store()
    policy = policy or DEFAULT_POLICY
    policy.require(actor, "MANAGE_CUSTOMERS")

    patch = _clean_customer_patch(fields)
    if not patch:
        raise ValidationError("Nothing to update")

    def _op():
        store.get("Customer", customer_id)
        with UnitOfWork(store, "update_customer") as uow:
            customer = uow.step("update_customer", store.update, "Customer", customer_id, patch)
            uow.step(
                "audit",
                record_audit, store, actor, AUDIT_UPDATE_CUSTOMER, f"Customer updated: {customer.name}",
            )
        return customer

    return run_with_retry(_op, rollback=store.rollback)
