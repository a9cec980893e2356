from __future__ import annotations

from ..extensions import db
from ..money import money_str
from billmaster.time_utils import to_utc_z, to_iso_date


class Invoice(db.Model):
    """
    Invoice document.

    WHY: An invoice carries a full snapshot of what was sold (customer
    contact, item names, units, HSN codes, rates) so that later edits to
    customers or items never change an issued bill.

    LINES: `items` is an ordered JSON list of line items. Decimal values are
    stored as strings; see services.pricing_service.LineItem.

    STATUS:
    - active:          issued, counts towards sales and dues
    - pending_cancel:  cancellation requested, awaiting admin decision
    - cancelled:       terminal; stock and credit were restored on approval

    PAYMENT:
    - cash / card / upi: amount_paid == grand_total, balance_due == 0
    - credit:            balance_due == grand_total - amount_paid, only decreases
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("invoice_number", name="uq_invoices_invoice_number"),
        db.Index("ix_invoices_status_created", "status", "created_date"),
        db.Index("ix_invoices_mode_due", "payment_mode", "due_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable number (e.g., "INV-42")
    invoice_number = db.Column(db.String(64), nullable=False)

    # Customer reference plus snapshot
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    customer_name = db.Column(db.String(255), nullable=False)
    customer_phone = db.Column(db.String(32), nullable=True)
    customer_address = db.Column(db.String(512), nullable=True)

    items = db.Column(db.JSON, nullable=False, default=list)

    # Totals
    subtotal = db.Column(db.Numeric(14, 2), nullable=False)
    discount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    rounding_off = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    grand_total = db.Column(db.Numeric(14, 2), nullable=False)

    # Payment
    payment_mode = db.Column(db.String(16), nullable=False, index=True)  # cash, card, upi, credit
    credit_term = db.Column(db.String(16), nullable=True)  # net_7 ... net_90
    due_date = db.Column(db.Date, nullable=True)
    amount_paid = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    balance_due = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    # Lifecycle
    status = db.Column(db.String(16), nullable=False, default="active", index=True)
    cancellation_reason = db.Column(db.String(512), nullable=True)
    cancellation_requested_by = db.Column(db.String(255), nullable=True)
    cancelled_by = db.Column(db.String(255), nullable=True)
    cancelled_date = db.Column(db.DateTime(timezone=True), nullable=True)

    created_by = db.Column(db.String(255), nullable=True)
    created_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("invoices", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Invoice {self.invoice_number} status={self.status} total={self.grand_total}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "customer_address": self.customer_address,
            "items": list(self.items or []),
            "subtotal": money_str(self.subtotal),
            "discount": money_str(self.discount),
            "rounding_off": money_str(self.rounding_off),
            "grand_total": money_str(self.grand_total),
            "payment_mode": self.payment_mode,
            "credit_term": self.credit_term,
            "due_date": to_iso_date(self.due_date),
            "amount_paid": money_str(self.amount_paid),
            "balance_due": money_str(self.balance_due),
            "status": self.status,
            "cancellation_reason": self.cancellation_reason,
            "cancellation_requested_by": self.cancellation_requested_by,
            "cancelled_by": self.cancelled_by,
            "cancelled_date": to_utc_z(self.cancelled_date),
            "created_by": self.created_by,
            "created_date": to_utc_z(self.created_date),
            "version_id": self.version_id,
        }
