# ------ orderdesk/model/__init__.py ------

from .user import User, RefreshToken, Role, ROLE_LEVEL
from .branch import Branch
from .category import Category
from .menu_item import MenuItem
from .promo_code import PromoCode, PromoCodeUsage
from .order import Order, OrderItem, ORDER_STATUSES, PAYMENT_STATUSES
from .setting import Setting
from .contact_message import ContactMessage

__all__ = [
    "User",
    "RefreshToken",
    "Role",
    "ROLE_LEVEL",
    "Branch",
    "Category",
    "MenuItem",
    "PromoCode",
    "PromoCodeUsage",
    "Order",
    "OrderItem",
    "ORDER_STATUSES",
    "PAYMENT_STATUSES",
    "Setting",
    "ContactMessage",
]
