# Overview: Model registry; importing this package registers every table on db.metadata.

from .accounts import (
    User,
    Address,
    Review,
    user_addresses,
    user_orders,
    wishlist_items,
    cart_items,
)
from .orders import Order, OrderLine, OrderStatusHistory

__all__ = [
    "User",
    "Address",
    "Review",
    "user_addresses",
    "user_orders",
    "wishlist_items",
    "cart_items",
    "Order",
    "OrderLine",
    "OrderStatusHistory",
]
