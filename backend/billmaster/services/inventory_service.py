# Overview: Stock item and category master data; create, edit, delete and list.

"""
Inventory Service

WHY: Invoices can only bill items that exist in stock master data. Items and
categories are created and edited here; the running stock balance is then
moved by invoices and cancellations through the stock ledger.

RULES:
- unit is one of pcs, box, kg, ltr, mtr, set; status is active or inactive
- quantity_in_stock and minimum_stock_alert are never negative when typed in
  (only over-selling invoices take stock below zero)
- countable units (pcs, box, set) hold whole quantities
- category names are unique; deleting a category leaves its items uncategorized
- every write records one audit entry
"""

from __future__ import annotations

from ..errors import ConflictError, ValidationError
from ..models import ITEM_STATUSES, ITEM_UNITS
from ..money import quantity_str, to_quantity
from ..policy import Actor, AccessPolicy, DEFAULT_POLICY
from .audit_service import (
    AUDIT_CREATE_CATEGORY,
    AUDIT_CREATE_ITEM,
    AUDIT_DELETE_CATEGORY,
    AUDIT_DELETE_ITEM,
    AUDIT_UPDATE_CATEGORY,
    AUDIT_UPDATE_ITEM,
    record_audit,
)
from .concurrency import run_with_retry
from .entity_store import get_store
from .pricing_service import COUNTABLE_UNITS
from .unit_of_work import UnitOfWork


ITEM_WRITABLE_FIELDS = {
    "name",
    "unit",
    "hsn_code",
    "quantity_in_stock",
    "minimum_stock_alert",
    "status",
    "category_id",
}
CATEGORY_WRITABLE_FIELDS = {"name", "description"}


def _clean_patch(fields, writable: set[str]) -> dict:
    if not isinstance(fields, dict):
        raise ValidationError("Invalid JSON payload")
    unknown = set(fields) - writable
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")
    return {k: (v.strip() if isinstance(v, str) else v) for k, v in fields.items()}


def _require_name(patch: dict, label: str) -> None:
    name = patch.get("name")
    if not isinstance(name, str) or not name:
        raise ValidationError(f"{label} name is required")


def _check_item_patch(store, patch: dict) -> dict:
    """Type and range checks on the fields present in an item patch."""
    if "name" in patch:
        _require_name(patch, "Item")
    if "unit" in patch and patch["unit"] not in ITEM_UNITS:
        raise ValidationError(f"Invalid unit '{patch['unit']}'. Must be one of: {', '.join(ITEM_UNITS)}")
    if "status" in patch and patch["status"] not in ITEM_STATUSES:
        raise ValidationError(
            f"Invalid status '{patch['status']}'. Must be one of: {', '.join(ITEM_STATUSES)}"
        )
    if "hsn_code" in patch:
        hsn = patch["hsn_code"]
        if hsn is not None and not isinstance(hsn, str):
            raise ValidationError("hsn_code must be a string")
        if hsn and len(hsn) > 16:
            raise ValidationError("hsn_code exceeds max length 16")
        patch["hsn_code"] = hsn or None

    for key in ("quantity_in_stock", "minimum_stock_alert"):
        if key in patch:
            value = to_quantity(patch[key], key)
            if value < 0:
                raise ValidationError(f"{key} cannot be negative")
            patch[key] = value

    if patch.get("category_id") is not None:
        category_id = patch["category_id"]
        if isinstance(category_id, bool):
            raise ValidationError("category_id must be an integer")
        try:
            category_id = int(category_id)
        except (TypeError, ValueError):
            raise ValidationError("category_id must be an integer")
        store.get("Category", category_id)
        patch["category_id"] = category_id
    return patch


def _check_whole_stock(unit: str, quantity) -> None:
    if unit in COUNTABLE_UNITS and quantity is not None and quantity != quantity.to_integral_value():
        raise ValidationError(f"Stock of a {unit} item must be a whole number")


# =============================================================================
# ITEMS
# =============================================================================


def list_items(
    *,
    store=None,
    status: str | None = None,
    category_id: int | None = None,
    search: str | None = None,
) -> list:
    """Items by name, optionally narrowed by status, category or a name fragment."""
    store = store or get_store()
    criteria = {}
    if status:
        if status not in ITEM_STATUSES:
            raise ValidationError(f"Invalid status '{status}'")
        criteria["status"] = status
    if category_id is not None:
        criteria["category_id"] = category_id
    items = store.filter("Item", sort="name", **criteria)
    if search and search.strip():
        needle = search.strip().lower()
        items = [item for item in items if needle in item.name.lower()]
    return items


def get_item(item_id: int, *, store=None):
    store = store or get_store()
    return store.get("Item", item_id)


def create_item(fields: dict, actor: Actor, *, store=None, policy: AccessPolicy | None = None):
    """
    Add a stock item.

    Raises:
        ValidationError: missing name, bad unit/status, negative or fractional stock
        NotFoundError: category_id does not exist
    """
    store = store or get_store()
    policy = policy or DEFAULT_POLICY
    policy.require(actor, "MANAGE_INVENTORY")

    patch = _clean_patch(fields, ITEM_WRITABLE_FIELDS)
    _require_name(patch, "Item")
    patch.setdefault("unit", "pcs")
    patch.setdefault("status", "active")

    def _op():
        values = _check_item_patch(store, dict(patch))
        _check_whole_stock(values["unit"], values.get("quantity_in_stock"))

        with UnitOfWork(store, "create_item") as uow:
            item = uow.step("create_item", store.create, "Item", values)
            uow.step(
                "audit",
                record_audit, store, actor, AUDIT_CREATE_ITEM,
                f"Item created: {item.name}, Stock: {quantity_str(item.quantity_in_stock or 0)}",
            )
        return item

    return run_with_retry(_op, rollback=store.rollback)


def update_item(
    item_id: int,
    fields: dict,
    actor: Actor,
    *,
    store=None,
    policy: AccessPolicy | None = None,
):
    """Partial update of an item's master data (name, unit, stock, status...)."""
    store = store or get_store()
    policy = policy or DEFAULT_POLICY
    policy.require(actor, "MANAGE_INVENTORY")

    patch = _clean_patch(fields, ITEM_WRITABLE_FIELDS)
    if not patch:
        raise ValidationError("Nothing to update")

    def _op():
        item = store.get("Item", item_id)
        values = _check_item_patch(store, dict(patch))
        _check_whole_stock(
            values.get("unit", item.unit),
            values.get("quantity_in_stock", to_quantity(item.quantity_in_stock or 0)),
        )

        with UnitOfWork(store, "update_item") as uow:
            item = uow.step("update_item", store.update, "Item", item_id, values)
            uow.step(
                "audit",
                record_audit, store, actor, AUDIT_UPDATE_ITEM,
                f"Item updated: {item.name}, Stock: {quantity_str(item.quantity_in_stock or 0)}",
            )
        return item

    return run_with_retry(_op, rollback=store.rollback)


def delete_item(item_id: int, actor: Actor, *, store=None, policy: AccessPolicy | None = None) -> None:
    """
    Remove an item from master data.

    Past invoices keep their line snapshots. Approving the cancellation of an
    invoice that still references a deleted item fails and rolls back.
    """
    store = store or get_store()
    policy = policy or DEFAULT_POLICY
    policy.require(actor, "MANAGE_INVENTORY")

    def _op():
        item = store.get("Item", item_id)
        name = item.name
        with UnitOfWork(store, "delete_item") as uow:
            uow.step("delete_item", store.delete, "Item", item_id)
            uow.step("audit", record_audit, store, actor, AUDIT_DELETE_ITEM, f"Item deleted: {name}")

    run_with_retry(_op, rollback=store.rollback)


# =============================================================================
# CATEGORIES
# =============================================================================


def list_categories(*, store=None) -> list:
    store = store or get_store()
    return store.filter("Category", sort="name")


def _ensure_unique_category(store, name: str, exclude_id: int | None = None) -> None:
    for category in store.filter("Category", name=name):
        if category.id != exclude_id:
            raise ConflictError(f"Category '{name}' already exists", details={"id": category.id})


def create_category(fields: dict, actor: Actor, *, store=None, policy: AccessPolicy | None = None):
    store = store or get_store()
    policy = policy or DEFAULT_POLICY
    policy.require(actor, "MANAGE_INVENTORY")

    patch = _clean_patch(fields, CATEGORY_WRITABLE_FIELDS)
    _require_name(patch, "Category")

    def _op():
        _ensure_unique_category(store, patch["name"])
        with UnitOfWork(store, "create_category") as uow:
            category = uow.step("create_category", store.create, "Category", patch)
            uow.step(
                "audit",
                record_audit, store, actor, AUDIT_CREATE_CATEGORY, f"Category created: {category.name}",
            )
        return category

    return run_with_retry(_op, rollback=store.rollback)


def update_category(
    category_id: int,
    fields: dict,
    actor: Actor,
    *,
    store=None,
    policy: AccessPolicy | None = None,
):
    store = store or get_store()
    policy = policy or DEFAULT_POLICY
    policy.require(actor, "MANAGE_INVENTORY")

    patch = _clean_patch(fields, CATEGORY_WRITABLE_FIELDS)
    if not patch:
        raise ValidationError("Nothing to update")
    if "name" in patch:
        _require_name(patch, "Category")

    def _op():
        store.get("Category", category_id)
        if "name" in patch:
            _ensure_unique_category(store, patch["name"], exclude_id=category_id)
        with UnitOfWork(store, "update_category") as uow:
            category = uow.step("update_category", store.update, "Category", category_id, patch)
            uow.step(
                "audit",
                record_audit, store, actor, AUDIT_UPDATE_CATEGORY, f"Category updated: {category.name}",
            )
        return category

    return run_with_retry(_op, rollback=store.rollback)


def delete_category(category_id: int, actor: Actor, *, store=None, policy: AccessPolicy | None = None) -> None:
    """Delete a category; its items stay, with no category."""
    store = store or get_store()
    policy = policy or DEFAULT_POLICY
    policy.require(actor, "MANAGE_INVENTORY")

    def _op():
        category = store.get("Category", category_id)
        name = category.name
        items = store.filter("Item", category_id=category_id)
        with UnitOfWork(store, "delete_category") as uow:
            for item in items:
                uow.step(f"uncategorize[item {item.id}]", store.update, "Item", item.id, {"category_id": None})
            uow.step("delete_category", store.delete, "Category", category_id)
            uow.step("audit", record_audit, store, actor, AUDIT_DELETE_CATEGORY, f"Category deleted: {name}")

    run_with_retry(_op, rollback=store.rollback)
