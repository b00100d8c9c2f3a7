# Overview: Service-layer operations for module permissions; encapsulates business logic and database work.

"""
Module-Based Access Control and Security Event Logging

WHY: Every guarded route belongs to a functional module ("Products", "Cart").
A role may use a module if and only if a role_permissions row links them.

DESIGN PRINCIPLES:
- Capability sets: a role resolves to a ModuleAccess value. Built-in tiers
  (the super admin) resolve from a static registry with no database query;
  every other role resolves from the role -> module join.
- Log denials only: grants are not logged.
- Database errors propagate. A failed lookup is a server error, not a deny.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import select, exists

from ..extensions import db
from ..models import Role, Module, RolePermission, SecurityEvent, User
from ..permissions import (
    ModuleAccess,
    MODULE_DEFINITIONS,
    SUPER_ADMIN_ROLE,
    SYSTEM_ROLES,
    DEFAULT_ROLE_MODULES,
    get_all_module_names,
    module_key_for,
    system_role_capabilities,
)
from ..formats import utcnow
from .concurrency import atomic


class ModuleAccessDenied(Exception):
    """Raised when a role lacks the module a route requires."""

    def __init__(self, module_name: str):
        super().__init__(f"Access denied. No permission for module: {module_name}")
        self.module_name = module_name


class RoleError(Exception):
    """Raised for role administration errors."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def super_admin_slug() -> str:
    return current_app.config.get("SUPER_ADMIN_ROLE", SUPER_ADMIN_ROLE)


def _registry() -> dict[str, ModuleAccess]:
    return system_role_capabilities(super_admin_slug())


def registry_access(role_slug: str | None) -> ModuleAccess | None:
    """Capability set declared in the registry, or None if the role is data-driven."""
    if not role_slug:
        return None
    return _registry().get(role_slug)


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    role: str | None = None,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """
    Append a security event to the audit trail.

    event_type examples:
    - MODULE_ACCESS_DENIED
    - LOGIN_FAILED
    - LOGIN_PENDING_ACCOUNT
    """
    event = SecurityEvent(
        user_id=user_id,
        role=role,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    db.session.commit()

    return event


def role_has_module(role_slug: str | None, module_name: str) -> bool:
    """
    Pure per-request predicate: may this role use this module?

    Registry roles answer without touching the database. Otherwise a single
    EXISTS query over role_permissions JOIN roles JOIN modules.
    """
    if not role_slug:
        return False

    declared = registry_access(role_slug)
    if declared is not None:
        return declared.allows(module_name)

    stmt = select(
        exists()
        .where(RolePermission.role_id == Role.id)
        .where(RolePermission.module_id == Module.id)
        .where(Role.slug == role_slug)
        .where(Module.name == module_name)
    )
    return bool(db.session.execute(stmt).scalar())


def require_module(
    role_slug: str | None,
    module_name: str,
    user_id: int | None = None,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """
    Require the role to have the module, raise ModuleAccessDenied if not.

    Usage:
        require_module(g.role, "Cart", user_id=g.current_user.id, resource=request.path)
    """
    if role_has_module(role_slug, module_name):
        return

    log_security_event(
        user_id=user_id,
        event_type="MODULE_ACCESS_DENIED",
        success=False,
        role=role_slug,
        resource=resource,
        action=module_name,
        reason=f"Missing module: {module_name}",
        ip_address=ip_address,
        user_agent=user_agent,
    )
    raise ModuleAccessDenied(module_name)


def list_modules() -> list[str]:
    """Module names from the database in creation order."""
    return [name for (name,) in db.session.query(Module.name).order_by(Module.id.asc()).all()]


def resolve_module_access(role_slug: str | None) -> ModuleAccess:
    """Capability set for a role (empty for unknown roles)."""
    declared = registry_access(role_slug)
    if declared is not None:
        return declared
    if not role_slug:
        return ModuleAccess.of(())

    rows = (
        db.session.query(Module.name)
        .join(RolePermission, RolePermission.module_id == Module.id)
        .join(Role, Role.id == RolePermission.role_id)
        .filter(Role.slug == role_slug)
        .all()
    )
    return ModuleAccess.of(name for (name,) in rows)


def get_module_names_for_role(role_slug: str | None) -> list[str]:
    access = resolve_module_access(role_slug)
    known = list_modules() if access.grants_all else get_all_module_names()
    return access.names(known)


def get_role_permission_map() -> dict[str, list[str]]:
    """
    Role slug -> module names, for every role.

    Registry roles are expanded to every module so clients never need
    to special-case them.
    """
    all_modules = list_modules()
    grants: dict[int, list[str]] = {}
    rows = (
        db.session.query(RolePermission.role_id, Module.name)
        .join(Module, Module.id == RolePermission.module_id)
        .order_by(Module.id.asc())
        .all()
    )
    for role_id, module_name in rows:
        grants.setdefault(role_id, []).append(module_name)

    result: dict[str, list[str]] = {}
    for role in db.session.query(Role).order_by(Role.id.asc()).all():
        declared = registry_access(role.slug)
        if declared is not None:
            result[role.slug] = declared.names(all_modules)
        else:
            result[role.slug] = grants.get(role.id, [])
    return result


def create_role(name: str, slug: str) -> Role:
    name = (name or "").strip()
    slug = (slug or "").strip()
    if not name or not slug:
        raise RoleError("Name and slug are required")

    duplicate = db.session.query(Role).filter(db.or_(Role.slug == slug, Role.name == name)).first()
    if duplicate:
        raise RoleError("Role with this name or slug already exists")

    role = Role(name=name, slug=slug, is_system=False)
    db.session.add(role)
    db.session.commit()
    return role


def replace_role_modules(mapping: dict) -> dict[str, list[str]]:
    """
    Replace module grants wholesale for each role in mapping ({slug: [module names]}).

    All roles are rewritten in one transaction. Registry roles and unknown
    slugs are skipped; unknown module names are ignored.

    Returns the applied grants per slug.
    """
    if not isinstance(mapping, dict):
        raise RoleError("Permissions data is required")

    applied: dict[str, list[str]] = {}
    with atomic():
        for slug, module_names in mapping.items():
            if registry_access(slug) is not None:
                continue

            role = db.session.query(Role).filter_by(slug=slug).first()
            if role is None:
                continue

            db.session.query(RolePermission).filter_by(role_id=role.id).delete(synchronize_session=False)

            names = module_names if isinstance(module_names, list) else []
            modules = []
            if names:
                modules = db.session.query(Module).filter(Module.name.in_(names)).order_by(Module.id.asc()).all()
            for module in modules:
                db.session.add(RolePermission(role_id=role.id, module_id=module.id))
            applied[slug] = [m.name for m in modules]

    return applied


def grant_module_to_role(role_slug: str, module_name: str) -> RolePermission:
    """Grant a module to a role."""
    role = db.session.query(Role).filter_by(slug=role_slug).first()
    if not role:
        raise RoleError(f"Role '{role_slug}' not found", 404)

    module = db.session.query(Module).filter_by(name=module_name).first()
    if not module:
        raise RoleError(f"Module '{module_name}' not found", 404)

    existing = db.session.query(RolePermission).filter_by(role_id=role.id, module_id=module.id).first()
    if existing:
        return existing  # Already granted

    role_permission = RolePermission(role_id=role.id, module_id=module.id)
    db.session.add(role_permission)
    db.session.commit()
    return role_permission


def revoke_module_from_role(role_slug: str, module_name: str) -> bool:
    """Revoke a module from a role."""
    role = db.session.query(Role).filter_by(slug=role_slug).first()
    if not role:
        raise RoleError(f"Role '{role_slug}' not found", 404)

    module = db.session.query(Module).filter_by(name=module_name).first()
    if not module:
        raise RoleError(f"Module '{module_name}' not found", 404)

    role_permission = db.session.query(RolePermission).filter_by(role_id=role.id, module_id=module.id).first()
    if role_permission:
        db.session.delete(role_permission)
        db.session.commit()
        return True

    return False  # Wasn't granted in the first place


def delete_role(slug: str) -> None:
    role = db.session.query(Role).filter_by(slug=slug).first()
    if role is None:
        raise RoleError("Role not found", 404)
    if role.is_system or registry_access(slug) is not None:
        raise RoleError("System roles cannot be deleted")
    if db.session.query(User.id).filter_by(role=slug).first() is not None:
        raise RoleError("Role is assigned to users and cannot be deleted", 409)

    db.session.delete(role)
    db.session.commit()


def ensure_modules() -> int:
    """
    Create Module rows for every entry in MODULE_DEFINITIONS.

    Idempotent: Safe to run multiple times.
    """
    created_count = 0
    for name, key in MODULE_DEFINITIONS:
        if db.session.query(Module).filter_by(name=name).first() is None:
            db.session.add(Module(name=name, key=key or module_key_for(name)))
            created_count += 1
    db.session.commit()
    return created_count


def ensure_system_roles() -> int:
    """Create the built-in roles. The super admin row uses the configured slug."""
    created_count = 0
    configured = super_admin_slug()
    for slug, name, is_system in SYSTEM_ROLES:
        if slug == SUPER_ADMIN_ROLE:
            slug = configured
        if db.session.query(Role).filter_by(slug=slug).first() is None:
            db.session.add(Role(name=name, slug=slug, is_system=is_system))
            created_count += 1
    db.session.commit()
    return created_count


def assign_default_role_modules() -> int:
    """
    Grant DEFAULT_ROLE_MODULES to roles that exist.

    Idempotent: Safe to run multiple times (skips existing).
    """
    created_count = 0

    for role_slug, module_names in DEFAULT_ROLE_MODULES.items():
        role = db.session.query(Role).filter_by(slug=role_slug).first()
        if not role:
            continue  # Role doesn't exist, skip

        for module_name in module_names:
            module = db.session.query(Module).filter_by(name=module_name).first()
            if not module:
                continue

            existing = db.session.query(RolePermission).filter_by(
                role_id=role.id,
                module_id=module.id,
            ).first()
            if not existing:
                db.session.add(RolePermission(role_id=role.id, module_id=module.id))
                created_count += 1

    db.session.commit()
    return created_count
