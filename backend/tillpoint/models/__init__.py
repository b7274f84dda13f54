from .inventory import Product
from .sales import Sale, SaleItem, SALE_STATUS_COMPLETED, SALE_STATUS_VOID
from .auth import User, SessionToken, ROLE_ADMIN, ROLE_CASHIER

__all__ = [
    'Product',
    'Sale', 'SaleItem', 'SALE_STATUS_COMPLETED', 'SALE_STATUS_VOID',
    'User', 'SessionToken', 'ROLE_ADMIN', 'ROLE_CASHIER',
]
