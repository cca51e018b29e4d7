from .auth import User, SessionToken
from .inventory import Product
from .sales import Sale, SaleLine, SaleSequence

__all__ = [
    'User', 'SessionToken',
    'Product',
    'Sale', 'SaleLine', 'SaleSequence',
]
