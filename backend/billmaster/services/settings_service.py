# Overview: Shop settings (single row) and the invoice prefix used for numbering.

from __future__ import annotations

from flask import current_app, has_app_context

from ..errors import ValidationError
from ..models import ShopSettings
from ..policy import Actor, AccessPolicy, DEFAULT_POLICY
from .audit_service import AUDIT_UPDATE_SETTINGS, record_audit
from .concurrency import run_with_retry
from .entity_store import get_store
from .unit_of_work import UnitOfWork


DEFAULT_INVOICE_PREFIX = "INV"

WRITABLE_FIELDS = {
    "shop_name",
    "address",
    "phone",
    "email",
    "gstin",
    "logo_url",
    "bank_name",
    "account_number",
    "ifsc_code",
    "upi_id",
    "invoice_prefix",
    "invoice_footer_text",
}


def configured_prefix() -> str:
    if has_app_context():
        return current_app.config.get("INVOICE_PREFIX") or DEFAULT_INVOICE_PREFIX
    return DEFAULT_INVOICE_PREFIX


def get_shop_settings(store=None) -> ShopSettings | None:
    """The settings row, or None when the shop has not been set up yet."""
    store = store or get_store()
    rows = store.filter("ShopSettings", sort="id", limit=1)
    return rows[0] if rows else None


def invoice_prefix(store=None) -> str:
    settings = get_shop_settings(store)
    if settings and settings.invoice_prefix and settings.invoice_prefix.strip():
        return settings.invoice_prefix.strip()
    return configured_prefix()


def update_shop_settings(
    fields: dict,
    actor: Actor,
    *,
    store=None,
    policy: AccessPolicy | None = None,
) -> ShopSettings:
    """
    Create or update the settings row.

    Raises:
        PermissionDeniedError: actor lacks MANAGE_SETTINGS
        ValidationError: unknown field, missing shop name, blank/oversized prefix
    """
    store = store or get_store()
    policy = policy or DEFAULT_POLICY
    policy.require(actor, "MANAGE_SETTINGS")

    if not isinstance(fields, dict):
        raise ValidationError("Invalid JSON payload")
    unknown = set(fields) - WRITABLE_FIELDS
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    patch = {k: (v.strip() if isinstance(v, str) else v) for k, v in fields.items()}

    if "invoice_prefix" in patch:
        prefix = patch["invoice_prefix"]
        if prefix is not None and not isinstance(prefix, str):
            raise ValidationError("invoice_prefix must be a string")
        if not prefix:
            raise ValidationError("invoice_prefix cannot be blank")
        if len(prefix) > 16:
            raise ValidationError("invoice_prefix exceeds max length 16")

    def _op():
        existing = get_shop_settings(store)
        shop_name = patch.get("shop_name", existing.shop_name if existing else None)
        if not shop_name:
            raise ValidationError("Shop name is required")

        with UnitOfWork(store, "update_settings") as uow:
            if existing:
                settings = uow.step(
                    "update_settings",
                    store.update,
                    "ShopSettings",
                    existing.id,
                    {**patch, "updated_by": actor.email},
                )
            else:
                values = {"invoice_prefix": configured_prefix(), **patch, "updated_by": actor.email}
                settings = uow.step("create_settings", store.create, "ShopSettings", values)
            uow.step("audit", record_audit, store, actor, AUDIT_UPDATE_SETTINGS, "Shop settings updated")
        return settings

    return run_with_retry(_op, rollback=store.rollback)
