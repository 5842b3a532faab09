# ------ storefront/model/__init__.py ------

from .user import User
from .category import Category
from .product import Product
from .cart import Cart, CartItem
from .order import Order, OrderItem, Payment
from .promotion import Promotion
from .blog import Blog

__all__ = [
    "User",
    "Category",
    "Product",
    "Cart",
    "CartItem",
    "Order",
    "OrderItem",
    "Payment",
    "Promotion",
    "Blog",
]
