from .auth import User, Account, SessionToken
from .shops import Shop
from .catalog import Product
from .orders import Order, OrderItem, OrderSequence
from .payments import Payment

__all__ = [
    'User', 'Account', 'SessionToken',
    'Shop',
    'Product',
    'Order', 'OrderItem', 'OrderSequence',
    'Payment',
]
