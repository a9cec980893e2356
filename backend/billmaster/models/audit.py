from __future__ import annotations

from ..extensions import db
from billmaster.time_utils import to_utc_z


class AuditLogEntry(db.Model):
    """
    Append-only audit trail.

    One row per state-changing operation: who did it (email + role at the
    time), what happened (action), a human-readable summary and, when the
    operation concerns an invoice, its number. Rows are never updated or
    deleted.
    """
    __tablename__ = "audit_log_entries"
    __table_args__ = (
        db.Index("ix_audit_action_created", "action", "created_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    action = db.Column(db.String(64), nullable=False, index=True)  # e.g. "Create Invoice", "Payment Received"
    user_email = db.Column(db.String(255), nullable=False, index=True)
    user_role = db.Column(db.String(32), nullable=False)
    details = db.Column(db.Text, nullable=True)
    invoice_number = db.Column(db.String(64), nullable=True, index=True)

    created_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "action": self.action,
            "user_email": self.user_email,
            "user_role": self.user_role,
            "details": self.details,
            "invoice_number": self.invoice_number,
            "created_date": to_utc_z(self.created_date),
        }
