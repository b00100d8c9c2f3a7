"""Seed modules, built-in roles and default role module grants

Revision ID: 0002_seed_access_control
Revises: 0001_initial_schema
Create Date: 2026-10-18

The data is written inline so this revision keeps producing the same rows
even if the application's defaults change later.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0002_seed_access_control"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None


MODULES = [
    ("Dashboard", "dashboard"),
    ("Users", "users"),
    ("Roles", "roles"),
    ("Products", "products"),
    ("Inventory", "inventory"),
    ("Sales", "sales"),
    ("Cart", "cart"),
    ("My Orders", "my_orders"),
    ("All Orders", "all_orders"),
    ("Notifications", "notifications"),
    ("Settings", "settings"),
]

ROLES = [
    ("super_admin", "Super Admin", True),
    ("admin", "Admin", True),
    ("manager", "Manager", False),
    ("tenant", "Tenant", False),
    ("user", "User", False),
]

# super_admin has no rows: its access is declared in code
GRANTS = {
    "admin": [name for name, _ in MODULES],
    "manager": [
        "Dashboard", "Products", "Inventory", "Sales", "Cart",
        "My Orders", "All Orders", "Notifications", "Settings",
    ],
    "tenant": ["Dashboard", "Products", "Inventory", "Cart", "My Orders", "Settings"],
    "user": ["Dashboard", "Cart", "My Orders", "Settings"],
}

modules_table = sa.table(
    "modules",
    sa.column("id", sa.Integer),
    sa.column("name", sa.String),
    sa.column("key", sa.String),
)
roles_table = sa.table(
    "roles",
    sa.column("id", sa.Integer),
    sa.column("name", sa.String),
    sa.column("slug", sa.String),
    sa.column("is_system", sa.Boolean),
)
role_permissions_table = sa.table(
    "role_permissions",
    sa.column("role_id", sa.Integer),
    sa.column("module_id", sa.Integer),
)


def upgrade():
    op.bulk_insert(modules_table, [{"name": name, "key": key} for name, key in MODULES])
    op.bulk_insert(
        roles_table,
        [{"slug": slug, "name": name, "is_system": is_system} for slug, name, is_system in ROLES],
    )

    bind = op.get_bind()
    module_ids = dict(bind.execute(sa.select(modules_table.c.name, modules_table.c.id)).all())
    role_ids = dict(bind.execute(sa.select(roles_table.c.slug, roles_table.c.id)).all())

    rows = [
        {"role_id": role_ids[slug], "module_id": module_ids[name]}
        for slug, names in GRANTS.items()
        for name in names
    ]
    op.bulk_insert(role_permissions_table, rows)


def downgrade():
    bind = op.get_bind()
    role_ids = [
        rid for (rid,) in bind.execute(
            sa.select(roles_table.c.id).where(roles_table.c.slug.in_([slug for slug, _, _ in ROLES]))
        ).all()
    ]
    if role_ids:
        op.execute(role_permissions_table.delete().where(role_permissions_table.c.role_id.in_(role_ids)))
        op.execute(roles_table.delete().where(roles_table.c.id.in_(role_ids)))
    op.execute(modules_table.delete().where(modules_table.c.name.in_([name for name, _ in MODULES])))
