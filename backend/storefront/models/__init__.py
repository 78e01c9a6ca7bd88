from .users import User, UserSuspension, SessionToken
from .catalog import Category, Brand, Product, Review, Wishlist, product_categories
from .cart import Cart, CartItem
from .orders import PaymentMethod, Order, OrderItem, Transaction
from .inventory import RequestOrder, ReorderRequest, InventoryAlert
from .notifications import Notification

__all__ = [
    'User', 'UserSuspension', 'SessionToken',
    'Category', 'Brand', 'Product', 'Review', 'Wishlist', 'product_categories',
    'Cart', 'CartItem',
    'PaymentMethod', 'Order', 'OrderItem', 'Transaction',
    'RequestOrder', 'ReorderRequest', 'InventoryAlert',
    'Notification',
]
