# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

"""
Inventory Service

Stock levels are one row per product. Checkout decrements them; this
module covers manual adjustment (restock, threshold) and lookups.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Inventory, Product, User
from ..permissions import TENANT_ROLE
from ..validation import validate_payload, enforce_rules_inventory, INVENTORY_POLICY, ValidationError
from ..formats import utcnow
from .pagination import paginate


class InventoryError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def _row(inv: Inventory, product: Product) -> dict:
    data = inv.to_dict()
    data["product_name"] = product.name
    data["sku"] = product.sku
    data["category"] = product.category
    data["is_low_stock"] = inv.is_low_stock
    return data


def list_inventory(actor: User, page=None, limit=None) -> dict:
    query = (
        db.session.query(Inventory, Product)
        .join(Product, Product.id == Inventory.product_id)
        .order_by(Product.name.asc(), Inventory.id.asc())
    )
    if actor.role == TENANT_ROLE:
        query = query.filter(Product.owner_id == actor.id)

    rows, meta = paginate(query, page, limit)
    return {"items": [_row(inv, product) for inv, product in rows], **meta}


def get_stock_for_product(product_id: int) -> int:
    inv = db.session.query(Inventory).filter_by(product_id=product_id).first()
    if inv is None:
        raise InventoryError("Inventory not found for this product", 404)
    return inv.quantity


def update_inventory(inventory_id: int, payload: dict, actor: User) -> Inventory:
    """Set quantity and/or low-stock threshold on an inventory row."""
    inv = db.session.query(Inventory).filter_by(id=inventory_id).first()
    if inv is None:
        raise InventoryError("Inventory not found", 404)
    if actor.role == TENANT_ROLE and inv.product.owner_id != actor.id:
        raise InventoryError("Inventory not found", 404)

    patch = validate_payload(model=Inventory, payload=payload, policy=INVENTORY_POLICY, partial=True)
    if not patch:
        raise ValidationError("Nothing to update: provide quantity or low_stock_threshold")
    enforce_rules_inventory(patch)

    for k, v in patch.items():
        setattr(inv, k, v)
    inv.last_updated = utcnow()
    db.session.commit()
    return inv
