from __future__ import annotations

from ..extensions import db
from ..money import quantity_str
from billmaster.time_utils import to_utc_z


ITEM_UNITS = ("pcs", "box", "kg", "ltr", "mtr", "set")
ITEM_STATUSES = ("active", "inactive")


class Category(db.Model):
    """Item grouping used by the inventory screens and reports."""
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_categories_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    created_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "created_date": to_utc_z(self.created_date),
        }


class Item(db.Model):
    """
    Stock item master data.

    STOCK: quantity_in_stock is a running balance. Invoices decrement it and
    approved cancellations restore it; no floor is applied, so the balance may
    go negative when over-selling is allowed.

    Invoice lines snapshot name/unit/HSN at creation time, so renaming an item
    never rewrites past invoices.
    """
    __tablename__ = "items"
    __table_args__ = (
        db.Index("ix_items_status_name", "status", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    unit = db.Column(db.String(8), nullable=False, default="pcs")  # pcs, box, kg, ltr, mtr, set
    hsn_code = db.Column(db.String(16), nullable=True)

    quantity_in_stock = db.Column(db.Numeric(14, 3), nullable=False, default=0)
    minimum_stock_alert = db.Column(db.Numeric(14, 3), nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="active", index=True)  # active, inactive
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)

    created_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_date = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    version_id = db.Column(db.Integer, nullable=False, default=1)

    category = db.relationship("Category", backref=db.backref("items", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Item id={self.id} name={self.name!r} stock={self.quantity_in_stock}>"

    @property
    def is_low_stock(self) -> bool:
        return self.quantity_in_stock <= self.minimum_stock_alert

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "unit": self.unit,
            "hsn_code": self.hsn_code,
            "quantity_in_stock": quantity_str(self.quantity_in_stock),
            "minimum_stock_alert": quantity_str(self.minimum_stock_alert),
            "status": self.status,
            "category_id": self.category_id,
            "created_date": to_utc_z(self.created_date),
            "updated_date": to_utc_z(self.updated_date),
            "version_id": self.version_id,
        }
