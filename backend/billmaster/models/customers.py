from __future__ import annotations

from ..extensions import db
from ..money import money_str
from billmaster.time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer master data with a running credit balance.

    WHY: outstanding_credit is a denormalized accumulator. It equals the sum
    of balance_due over the customer's non-cancelled credit invoices and is
    maintained incrementally by the invoice engine (creation, payments and
    approved cancellations), never recomputed.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_name", "name"),
        db.Index("ix_customers_phone", "phone"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    address = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(128), nullable=True)
    state = db.Column(db.String(128), nullable=True)
    pincode = db.Column(db.String(16), nullable=True)
    gstin = db.Column(db.String(32), nullable=True)

    # Never negative; clamped at zero by the customer ledger
    outstanding_credit = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    # Stored for the customer form; the engine does not consult it
    credit_eligible = db.Column(db.Boolean, nullable=False, default=False)

    created_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def full_address(self) -> str:
        parts = [self.address, self.city, self.state, self.pincode]
        return ", ".join(p for p in parts if p)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "pincode": self.pincode,
            "gstin": self.gstin,
            "outstanding_credit": money_str(self.outstanding_credit),
            "credit_eligible": self.credit_eligible,
            "created_date": to_utc_z(self.created_date),
            "updated_date": to_utc_z(self.updated_date),
            "version_id": self.version_id,
        }
