from .inventory import Category, Item, ITEM_UNITS, ITEM_STATUSES
from .customers import Customer
from .invoices import Invoice
from .audit import AuditLogEntry
from .settings import ShopSettings

__all__ = [
    'Category', 'Item', 'ITEM_UNITS', 'ITEM_STATUSES',
    'Customer',
    'Invoice',
    'AuditLogEntry',
    'ShopSettings',
]
