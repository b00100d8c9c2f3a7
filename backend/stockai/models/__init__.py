from .auth import User, Role, Module, RolePermission, SessionToken
from .catalog import Product, Inventory
from .sales import Order, Sale
from .security import SecurityEvent
from .notifications import Notification

__all__ = [
    'User', 'Role', 'Module', 'RolePermission', 'SessionToken',
    'Product', 'Inventory',
    'Order', 'Sale',
    'SecurityEvent',
    'Notification',
]
