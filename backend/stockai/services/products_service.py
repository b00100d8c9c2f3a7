# backend/stockai/services/products_service.py
"""
Products Service with Tenant Ownership

OWNERSHIP: Tenants only list, read, edit and delete products they own
(Product.owner_id). Staff roles see the whole catalog.

Every product is created together with its inventory row (quantity 0,
threshold 10) so stock lookups never miss.
"""
from __future__ import annotations
from datetime import timedelta

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, Inventory, Sale, User
from ..permissions import TENANT_ROLE
from ..validation import ConflictError, product_patch_from_payload
from ..formats import parse_iso_datetime, utcnow
from .concurrency import atomic
from .pagination import paginate


class ProductError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def _scoped(query, actor: User):
    if actor.role == TENANT_ROLE:
        return query.filter(Product.owner_id == actor.id)
    return query


def _ensure_sku_free(sku: str | None, exclude_id: int | None = None) -> None:
    if not sku:
        return
    q = db.session.query(Product.id).filter(Product.sku == sku)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first() is not None:
        raise ConflictError("SKU already exists", {"sku": sku})


def product_with_stock(product: Product) -> dict:
    data = product.to_dict()
    inv = product.inventory
    data["quantity"] = inv.quantity if inv else 0
    data["low_stock_threshold"] = inv.low_stock_threshold if inv else None
    return data


def list_products(actor: User, page=None, limit=None, start_date: str | None = None, end_date: str | None = None) -> dict:
    """Newest first; optional created_at window (inclusive ISO dates)."""
    query = _scoped(db.session.query(Product), actor)

    try:
        start = parse_iso_datetime(start_date)
        end = parse_iso_datetime(end_date)
    except ValueError:
        raise ProductError("Invalid date filter; use ISO-8601")
    if start is not None:
        query = query.filter(Product.created_at >= start)
    if end is not None:
        if end_date and len(end_date.strip()) == 10:
            end = end + timedelta(days=1)
            query = query.filter(Product.created_at < end)
        else:
            query = query.filter(Product.created_at <= end)

    query = query.order_by(Product.created_at.desc(), Product.id.desc())
    rows, meta = paginate(query, page, limit)
    return {"products": [product_with_stock(p) for p in rows], **meta}


def get_product(product_id: int, actor: User) -> Product:
    product = _scoped(db.session.query(Product), actor).filter(Product.id == product_id).first()
    if product is None:
        raise ProductError("Product not found", 404)
    return product


def create_product(payload: dict, actor: User) -> Product:
    """
    Create a product and its inventory row in one transaction.

    Tenants become the owner of what they create.
    """
    patch = product_patch_from_payload(payload, partial=False)
    _ensure_sku_free(patch.get("sku"))

    try:
        with atomic():
            product = Product(**patch)
            product.status = patch.get("status") or "active"
            if actor.role == TENANT_ROLE:
                product.owner_id = actor.id
            product.inventory = Inventory(quantity=0, low_stock_threshold=10)
            db.session.add(product)
    except IntegrityError:
        raise ConflictError("SKU already exists", {"sku": patch.get("sku")})
    return product


def update_product(product_id: int, payload: dict, actor: User) -> Product:
    product = get_product(product_id, actor)
    patch = product_patch_from_payload(payload, partial=True)
    if "sku" in patch:
        _ensure_sku_free(patch["sku"], exclude_id=product.id)

    try:
        with atomic():
            for k, v in patch.items():
                setattr(product, k, v)
            product.updated_at = utcnow()
    except IntegrityError:
        raise ConflictError("SKU already exists", {"sku": patch.get("sku")})
    return product


def delete_product(product_id: int, actor: User) -> None:
    """Delete a product; its inventory goes with it and sales keep their rows."""
    product = get_product(product_id, actor)
    with atomic():
        db.session.query(Sale).filter(Sale.product_id == product.id).update(
            {Sale.product_id: None}, synchronize_session=False
        )
        db.session.delete(product)


def product_stats(actor: User) -> dict:
    """
    lowStockCount: 0 < quantity <= threshold
    outOfStockCount: quantity == 0
    todaysSalesCount: sale lines since midnight UTC
    """
    inv = db.session.query(Inventory).join(Product, Product.id == Inventory.product_id)
    inv = _scoped(inv, actor)

    low = inv.filter(Inventory.quantity > 0, Inventory.quantity <= Inventory.low_stock_threshold).count()
    out = inv.filter(Inventory.quantity <= 0).count()

    start_of_day = utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    sales = db.session.query(func.count(Sale.id)).filter(Sale.sale_date >= start_of_day)
    if actor.role == TENANT_ROLE:
        sales = sales.join(Product, Product.id == Sale.product_id).filter(Product.owner_id == actor.id)

    return {
        "lowStockCount": low,
        "outOfStockCount": out,
        "todaysSalesCount": int(sales.scalar() or 0),
    }
