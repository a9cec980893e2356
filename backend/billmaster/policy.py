# Overview: Acting user and the injected access policy consulted by service entry points.

"""
Access Policy

WHY: Role checks used to be repeated on every screen. The services now take a
single policy object and ask it before doing anything, so every caller (API
route, CLI command, test) gets the same answer.

ROLES:
- user:  day-to-day billing (create invoices, take payments, ask for cancellation)
         plus the stock and customer master data
- admin: everything a user can do plus approving/rejecting cancellations,
         shop settings and the audit log

The identity provider is upstream; this module only consumes the acting
user's email and role.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import PermissionDeniedError, ValidationError


ROLE_ADMIN = "admin"
ROLE_USER = "user"
VALID_ROLES = {ROLE_ADMIN, ROLE_USER}


# (code, description)
PERMISSION_DEFINITIONS = [
    ("CREATE_INVOICE", "Create invoices (adjusts stock and customer credit)"),
    ("VIEW_INVOICES", "View invoices and invoice lists"),
    ("RECORD_PAYMENT", "Record payments against credit invoices"),
    ("REQUEST_CANCELLATION", "Ask for an invoice to be cancelled"),
    ("APPROVE_CANCELLATION", "Approve or reject pending cancellations"),
    ("VIEW_REPORTS", "View credit dues, sales summary and low stock"),
    ("VIEW_AUDIT_LOG", "View the audit trail"),
    ("VIEW_INVENTORY", "View stock items and categories"),
    ("MANAGE_INVENTORY", "Create, edit and delete stock items and categories"),
    ("VIEW_CUSTOMERS", "View customers and their outstanding credit"),
    ("MANAGE_CUSTOMERS", "Create and edit customers"),
    ("MANAGE_SETTINGS", "Edit shop settings and invoice prefix"),
]

ALL_PERMISSIONS = frozenset(code for code, _ in PERMISSION_DEFINITIONS)

DEFAULT_ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    ROLE_ADMIN: ALL_PERMISSIONS,
    ROLE_USER: frozenset({
        "CREATE_INVOICE",
        "VIEW_INVOICES",
        "RECORD_PAYMENT",
        "REQUEST_CANCELLATION",
        "VIEW_REPORTS",
        "VIEW_INVENTORY",
        "MANAGE_INVENTORY",
        "VIEW_CUSTOMERS",
        "MANAGE_CUSTOMERS",
    }),
}


@dataclass(frozen=True)
class Actor:
    """The user on whose behalf an operation runs."""

    email: str
    role: str

    def __post_init__(self):
        if not self.email or not str(self.email).strip():
            raise ValidationError("Acting user email is required")
        if self.role not in VALID_ROLES:
            raise ValidationError(
                f"Invalid role '{self.role}'. Must be one of: {', '.join(sorted(VALID_ROLES))}"
            )

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


@dataclass
class AccessPolicy:
    """
    Role -> permission lookup.

    Fail closed: an unknown role or permission code is denied.
    """

    role_permissions: dict[str, frozenset[str]] = field(
        default_factory=lambda: dict(DEFAULT_ROLE_PERMISSIONS)
    )

    def can(self, actor: Actor, permission_code: str) -> bool:
        return permission_code in self.role_permissions.get(actor.role, frozenset())

    def require(self, actor: Actor, permission_code: str) -> None:
        if not self.can(actor, permission_code):
            raise PermissionDeniedError(
                f"Permission denied: {permission_code}",
                details={"required_permission": permission_code, "role": actor.role},
            )


class AllowAllPolicy(AccessPolicy):
    """Policy for trusted callers such as CLI maintenance commands."""

    def can(self, actor: Actor, permission_code: str) -> bool:
        return True


DEFAULT_POLICY = AccessPolicy()
