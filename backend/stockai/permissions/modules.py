# Overview: Functional modules used as the unit of access control.
# Each module is defined as: (name, key)

MODULE_DASHBOARD = "Dashboard"
MODULE_USERS = "Users"
MODULE_ROLES = "Roles"
MODULE_PRODUCTS = "Products"
MODULE_INVENTORY = "Inventory"
MODULE_SALES = "Sales"
MODULE_CART = "Cart"
MODULE_MY_ORDERS = "My Orders"
MODULE_ALL_ORDERS = "All Orders"
MODULE_NOTIFICATIONS = "Notifications"
MODULE_SETTINGS = "Settings"

MODULE_DEFINITIONS = [
    (MODULE_DASHBOARD, "dashboard"),
    (MODULE_USERS, "users"),
    (MODULE_ROLES, "roles"),
    (MODULE_PRODUCTS, "products"),
    (MODULE_INVENTORY, "inventory"),
    (MODULE_SALES, "sales"),
    (MODULE_CART, "cart"),
    (MODULE_MY_ORDERS, "my_orders"),
    (MODULE_ALL_ORDERS, "all_orders"),
    (MODULE_NOTIFICATIONS, "notifications"),
    (MODULE_SETTINGS, "settings"),
]


def get_all_module_names():
    """Get list of all module names in display order."""
    return [name for name, _key in MODULE_DEFINITIONS]


def module_key_for(name):
    """Derive a stable key for a module name ("All Orders" -> "all_orders")."""
    for module_name, key in MODULE_DEFINITIONS:
        if module_name == name:
            return key
    return "_".join(name.lower().split())
