# Overview: Built-in roles, their default module grants, and capability sets.

from __future__ import annotations

from dataclasses import dataclass

from .modules import (
    get_all_module_names,
    MODULE_DASHBOARD,
    MODULE_PRODUCTS,
    MODULE_INVENTORY,
    MODULE_SALES,
    MODULE_CART,
    MODULE_MY_ORDERS,
    MODULE_ALL_ORDERS,
    MODULE_NOTIFICATIONS,
    MODULE_SETTINGS,
)


@dataclass(frozen=True)
class ModuleAccess:
    """
    Capability set resolved for a role.

    Either every module (grants_all=True) or an explicit set of module names.
    Consumers call allows()/names() and never inspect role slugs themselves.
    """
    grants_all: bool = False
    modules: frozenset[str] = frozenset()

    @classmethod
    def everything(cls) -> "ModuleAccess":
        return cls(grants_all=True)

    @classmethod
    def of(cls, names) -> "ModuleAccess":
        return cls(grants_all=False, modules=frozenset(names))

    def allows(self, module_name: str) -> bool:
        return self.grants_all or module_name in self.modules

    def names(self, all_module_names: list[str]) -> list[str]:
        """Module names in display order."""
        if self.grants_all:
            return list(all_module_names)
        ordered = [name for name in all_module_names if name in self.modules]
        extra = sorted(self.modules.difference(all_module_names))
        return ordered + extra


SUPER_ADMIN_ROLE = "super_admin"
ADMIN_ROLE = "admin"
MANAGER_ROLE = "manager"
TENANT_ROLE = "tenant"
USER_ROLE = "user"

# (slug, display name, is_system)
SYSTEM_ROLES = [
    (SUPER_ADMIN_ROLE, "Super Admin", True),
    (ADMIN_ROLE, "Admin", True),
    (MANAGER_ROLE, "Manager", False),
    (TENANT_ROLE, "Tenant", False),
    (USER_ROLE, "User", False),
]

# Roles whose module access is fixed here instead of in role_permissions.
# The super admin slug is configurable, so the registry is built per app.
def system_role_capabilities(super_admin_slug: str = SUPER_ADMIN_ROLE) -> dict[str, ModuleAccess]:
    return {super_admin_slug: ModuleAccess.everything()}


DEFAULT_ROLE_MODULES = {
    ADMIN_ROLE: get_all_module_names(),
    MANAGER_ROLE: [
        MODULE_DASHBOARD,
        MODULE_PRODUCTS,
        MODULE_INVENTORY,
        MODULE_SALES,
        MODULE_CART,
        MODULE_MY_ORDERS,
        MODULE_ALL_ORDERS,
        MODULE_NOTIFICATIONS,
        MODULE_SETTINGS,
    ],
    TENANT_ROLE: [
        MODULE_DASHBOARD,
        MODULE_PRODUCTS,
        MODULE_INVENTORY,
        MODULE_CART,
        MODULE_MY_ORDERS,
        MODULE_SETTINGS,
    ],
    USER_ROLE: [
        MODULE_DASHBOARD,
        MODULE_CART,
        MODULE_MY_ORDERS,
        MODULE_SETTINGS,
    ],
}
