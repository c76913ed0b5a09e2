from .tenancy import Business, Sequence
from .auth import User, SessionToken
from .inventory import Product
from .customers import Customer
from .invoices import Invoice, InvoiceItem
from .sales import Sale
from .audit import ActivityLog

__all__ = [
    'Business', 'Sequence',
    'User', 'SessionToken',
    'Product',
    'Customer',
    'Invoice', 'InvoiceItem',
    'Sale',
    'ActivityLog',
]
