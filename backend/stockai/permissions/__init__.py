# Overview: Access-control registry package.
# Re-exports module definitions, built-in roles and capability sets.

from .modules import (
    MODULE_DEFINITIONS,
    MODULE_DASHBOARD,
    MODULE_USERS,
    MODULE_ROLES,
    MODULE_PRODUCTS,
    MODULE_INVENTORY,
    MODULE_SALES,
    MODULE_CART,
    MODULE_MY_ORDERS,
    MODULE_ALL_ORDERS,
    MODULE_NOTIFICATIONS,
    MODULE_SETTINGS,
    get_all_module_names,
    module_key_for,
)
from .roles import (
    ModuleAccess,
    SUPER_ADMIN_ROLE,
    ADMIN_ROLE,
    MANAGER_ROLE,
    TENANT_ROLE,
    USER_ROLE,
    SYSTEM_ROLES,
    DEFAULT_ROLE_MODULES,
    system_role_capabilities,
)

__all__ = [
    "MODULE_DEFINITIONS",
    "MODULE_DASHBOARD",
    "MODULE_USERS",
    "MODULE_ROLES",
    "MODULE_PRODUCTS",
    "MODULE_INVENTORY",
    "MODULE_SALES",
    "MODULE_CART",
    "MODULE_MY_ORDERS",
    "MODULE_ALL_ORDERS",
    "MODULE_NOTIFICATIONS",
    "MODULE_SETTINGS",
    "get_all_module_names",
    "module_key_for",
    "ModuleAccess",
    "SUPER_ADMIN_ROLE",
    "ADMIN_ROLE",
    "MANAGER_ROLE",
    "TENANT_ROLE",
    "USER_ROLE",
    "SYSTEM_ROLES",
    "DEFAULT_ROLE_MODULES",
    "system_role_capabilities",
]
