from __future__ import annotations

from ..extensions import db
from billmaster.time_utils import to_utc_z


class ShopSettings(db.Model):
    """
    Shop profile and invoice preferences (single row).

    The invoice prefix feeds invoice numbering ("{prefix}-{N}"); the rest is
    printed on invoices.
    """
    __tablename__ = "shop_settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)

    shop_name = db.Column(db.String(255), nullable=False)
    address = db.Column(db.String(512), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    gstin = db.Column(db.String(32), nullable=True)
    logo_url = db.Column(db.String(512), nullable=True)

    bank_name = db.Column(db.String(128), nullable=True)
    account_number = db.Column(db.String(64), nullable=True)
    ifsc_code = db.Column(db.String(32), nullable=True)
    upi_id = db.Column(db.String(128), nullable=True)

    invoice_prefix = db.Column(db.String(16), nullable=False, default="INV")
    invoice_footer_text = db.Column(db.String(255), nullable=True, default="Thank You For Business With Us!")

    updated_by = db.Column(db.String(255), nullable=True)
    updated_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_name": self.shop_name,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
            "gstin": self.gstin,
            "logo_url": self.logo_url,
            "bank_name": self.bank_name,
            "account_number": self.account_number,
            "ifsc_code": self.ifsc_code,
            "upi_id": self.upi_id,
            "invoice_prefix": self.invoice_prefix,
            "invoice_footer_text": self.invoice_footer_text,
            "updated_by": self.updated_by,
            "updated_date": to_utc_z(self.updated_date),
            "version_id": self.version_id,
        }
