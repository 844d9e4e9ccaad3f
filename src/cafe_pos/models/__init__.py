from .user import User, RoleEnum, VOID_ROLES
from .category import Category
from .menu_item import MenuItem
from .menu_item_variant import MenuItemVariant
from .order import Order, OrderStatusEnum, PaymentMethodEnum
from .order_item import OrderItem
from .transaction import Transaction
from .inventory_log import InventoryLog, InventoryActionEnum
from .audit_log import AuditLog

__all__ = [
    "User",
    "RoleEnum",
    "VOID_ROLES",
    "Category",
    "MenuItem",
    "MenuItemVariant",
    "Order",
    "OrderStatusEnum",
    "PaymentMethodEnum",
    "OrderItem",
    "Transaction",
    "InventoryLog",
    "InventoryActionEnum",
    "AuditLog",
]
