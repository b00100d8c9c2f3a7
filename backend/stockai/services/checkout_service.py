# Overview: Service-layer operations for checkout and orders; encapsulates business logic and database work.

"""
Checkout Orchestrator

WHY: A cart must become exactly one Order plus one Sale per line, with
inventory decremented consistently, or nothing at all.

FLOWS:
- Direct checkout: the caller supplies line prices (trusted internal path).
- Gateway checkout: phase 1 checks stock and opens an external payment
  session carrying the cart as metadata; phase 2 verifies the session is
  paid and places the order with the gateway-confirmed total.

DESIGN PRINCIPLES:
- All-or-nothing: any shortage aborts the whole batch; atomic() rolls back
  before the error propagates.
- Inventory rows are read with SELECT ... FOR UPDATE inside the
  transaction, so concurrent checkouts on backends that honor row locks
  serialize on the same product instead of overselling.
- Errors are returned to the caller. Nothing is retried automatically.
- Stock is not reserved between gateway phases; phase 2 re-checks it.
- verify_payment has no replay guard: the same paid session places a new
  order every time it is submitted.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Order, Sale, Inventory, Product, User
from ..formats import amount_to_cents, parse_iso_datetime, utcnow
from ..validation import MAX_PRICE_CENTS
from .concurrency import atomic, lock_for_update
from .pagination import paginate
from .payment_gateway import GatewayLineItem, PaymentGateway


# Largest value an INTEGER column holds (signed 64-bit)
MAX_DB_INT = 2**63 - 1


class CheckoutError(Exception):
    """Raised for checkout and order errors."""

    def __init__(self, message: str, status_code: int = 400, details: dict | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details or {}


class InsufficientStockError(CheckoutError):
    def __init__(self, product_id: int, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for product id {product_id}",
            400,
            {"product_id": product_id, "requested": requested, "available": available},
        )
        self.product_id = product_id


@dataclass(frozen=True)
class CartItem:
    product_id: int
    quantity: int
    price_cents: int

    @property
    def line_total_cents(self) -> int:
        return self.price_cents * self.quantity

    def to_metadata(self) -> dict:
        return {"product_id": self.product_id, "quantity": self.quantity, "price_cents": self.price_cents}


def _positive_int(value) -> int | None:
    """Strictly positive integer within the 64-bit column range, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        value = int(value) if value.is_integer() else None
    elif isinstance(value, str):
        try:
            value = int(value.strip()) if value.strip().isdecimal() else None
        except ValueError:
            value = None
    if not isinstance(value, int):
        return None
    return value if 0 < value <= MAX_DB_INT else None


def parse_cart_items(raw) -> list[CartItem]:
    """
    Normalize a client cart into CartItems, preserving order.

    Rows with a missing/invalid/out-of-range product id, a non-positive or
    fractional quantity, or a missing, negative or oversized price are
    skipped, not rejected.
    Raises CheckoutError when the payload is not a list or nothing valid remains.
    """
    if not isinstance(raw, list) or not raw:
        raise CheckoutError("Cart items are required")

    items: list[CartItem] = []
    for row in raw:
        if not isinstance(row, dict):
            continue
        product_id = _positive_int(row.get("product_id"))
        quantity = _positive_int(row.get("quantity"))
        if product_id is None or quantity is None:
            continue
        try:
            price_cents = amount_to_cents(row.get("price"))
        except ValueError:
            continue
        if price_cents < 0 or price_cents > MAX_PRICE_CENTS:
            continue
        items.append(CartItem(product_id=product_id, quantity=quantity, price_cents=price_cents))

    if not items:
        raise CheckoutError("No valid items in cart")
    return items


def place_order(
    user_id: int,
    items: list[CartItem],
    *,
    total_cents: int | None = None,
    payment_session_id: str | None = None,
) -> tuple[Order, list[Sale]]:
    """
    Persist one Order and one Sale per item, decrementing inventory.

    Runs in a single transaction:
    1. Total = sum(price x quantity), unless the gateway confirmed total_cents.
    2. Insert the Order (status "completed").
    3. For each item in cart order: lock and re-read the inventory row; if it
       holds fewer units than requested, abort with InsufficientStockError.
       Otherwise insert the Sale and decrement the inventory.

    A missing inventory row counts as zero stock.

    Returns (order, sales).
    """
    if not items:
        raise CheckoutError("No valid items in cart")

    now = utcnow()
    with atomic():
        total = total_cents if total_cents is not None else sum(item.line_total_cents for item in items)
        if total > MAX_DB_INT:
            raise CheckoutError("Order total is too large")

        order = Order(
            user_id=user_id,
            total_amount_cents=total,
            status="completed",
            payment_session_id=payment_session_id,
            created_at=now,
        )
        db.session.add(order)
        db.session.flush()

        sales: list[Sale] = []
        for item in items:
            inventory = lock_for_update(
                db.session.query(Inventory).filter_by(product_id=item.product_id)
            ).first()
            available = inventory.quantity if inventory else 0
            if available < item.quantity:
                raise InsufficientStockError(item.product_id, item.quantity, available)

            sale = Sale(
                order_id=order.id,
                product_id=item.product_id,
                quantity=item.quantity,
                total_amount_cents=item.line_total_cents,
                sale_date=now,
            )
            db.session.add(sale)
            inventory.quantity -= item.quantity
            inventory.last_updated = now
            sales.append(sale)

        db.session.flush()

    current_app.logger.info(
        "Order %s placed by user %s (%d lines, %d cents)", order.id, user_id, len(sales), total
    )
    return order, sales


def record_sale(user_id: int, payload: dict) -> Sale:
    """
    Record one sale line that belongs to no order (counter sale).

    Body fields: product_id, quantity, total_amount (decimal). The inventory
    row is locked and decremented in the same transaction; a shortage raises
    InsufficientStockError and nothing persists.
    """
    if not isinstance(payload, dict):
        payload = {}
    product_id = _positive_int(payload.get("product_id"))
    quantity = _positive_int(payload.get("quantity"))
    try:
        total_cents = amount_to_cents(payload.get("total_amount"))
    except ValueError:
        total_cents = None
    if product_id is None or quantity is None or total_cents is None:
        raise CheckoutError("product_id, quantity and total_amount are required")
    if total_cents < 0 or total_cents > MAX_DB_INT:
        raise CheckoutError("total_amount is out of range")

    now = utcnow()
    with atomic():
        inventory = lock_for_update(
            db.session.query(Inventory).filter_by(product_id=product_id)
        ).first()
        available = inventory.quantity if inventory else 0
        if available < quantity:
            raise InsufficientStockError(product_id, quantity, available)

        sale = Sale(
            order_id=None,
            product_id=product_id,
            quantity=quantity,
            total_amount_cents=total_cents,
            sale_date=now,
        )
        db.session.add(sale)
        inventory.quantity -= quantity
        inventory.last_updated = now
        db.session.flush()

    current_app.logger.info("Sale %s recorded by user %s (product %s x%d)", sale.id, user_id, product_id, quantity)
    return sale


def check_stock(items: list[CartItem]) -> None:
    """Read-only sufficiency check. Nothing is reserved."""
    for item in items:
        inventory = db.session.query(Inventory).filter_by(product_id=item.product_id).first()
        available = inventory.quantity if inventory else 0
        if available < item.quantity:
            raise InsufficientStockError(item.product_id, item.quantity, available)


def create_checkout_session(user_id: int, items: list[CartItem], gateway: PaymentGateway) -> dict:
    """
    Gateway phase 1.

    Checks stock, then opens a payment session whose metadata carries the
    user id and the cart. No Order or Sale exists until verify_payment.
    """
    check_stock(items)

    # check_stock guarantees an inventory row, hence a product, for every item
    products = {
        p.id: p
        for p in db.session.query(Product).filter(Product.id.in_([i.product_id for i in items])).all()
    }
    line_items = [
        GatewayLineItem(
            name=products[item.product_id].name,
            unit_amount_cents=item.price_cents,
            quantity=item.quantity,
        )
        for item in items
    ]

    client_url = current_app.config.get("CLIENT_URL", "http://localhost:5173").rstrip("/")
    session = gateway.create_session(
        line_items=line_items,
        success_url=f"{client_url}/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{client_url}/cart",
        metadata={
            "user_id": str(user_id),
            "items": json.dumps([item.to_metadata() for item in items], separators=(",", ":")),
        },
    )

    current_app.logger.info("Checkout session %s created for user %s", session.id, user_id)
    return {"id": session.id, "url": session.url}


def _items_from_metadata(metadata: dict) -> list[CartItem]:
    try:
        rows = json.loads(metadata.get("items") or "[]")
        return [
            CartItem(
                product_id=int(row["product_id"]),
                quantity=int(row["quantity"]),
                price_cents=int(row["price_cents"]),
            )
            for row in rows
        ]
    except (ValueError, TypeError, KeyError) as e:
        raise CheckoutError("Checkout session metadata is invalid", 400, {"reason": str(e)})


def verify_payment(session_id: str, gateway: PaymentGateway) -> tuple[Order, list[Sale]]:
    """
    Gateway phase 2.

    Not paid -> CheckoutError("Payment not completed"), no side effects.
    Paid -> place the order from the session's cart with the
    gateway-confirmed total.
    """
    if not session_id or not isinstance(session_id, str):
        raise CheckoutError("Session ID is required")

    session = gateway.retrieve_session(session_id)
    if not session.is_paid:
        current_app.logger.warning("Checkout session %s is not paid (%s)", session_id, session.payment_status)
        raise CheckoutError("Payment not completed")

    items = _items_from_metadata(session.metadata)
    try:
        user_id = int(session.metadata.get("user_id"))
    except (TypeError, ValueError):
        raise CheckoutError("Checkout session metadata is invalid")

    return place_order(
        user_id,
        items,
        total_cents=session.amount_total_cents,
        payment_session_id=session.id,
    )


def cancel_order(order_id: int, actor_id: int | None = None) -> Order:
    """
    Cancel a completed order and put its units back into stock.

    Only "completed" orders can be cancelled. The status change and every
    restock happen in one transaction.
    """
    with atomic():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if order is None:
            raise CheckoutError("Order not found", 404)
        if order.status != "completed":
            raise CheckoutError(f"Cannot cancel order with status {order.status}", 409)

        now = utcnow()
        for sale in order.sales:
            if sale.product_id is None:
                continue
            inventory = lock_for_update(
                db.session.query(Inventory).filter_by(product_id=sale.product_id)
            ).first()
            if inventory is None:
                inventory = Inventory(product_id=sale.product_id, quantity=0, low_stock_threshold=10)
                db.session.add(inventory)
            inventory.quantity = (inventory.quantity or 0) + sale.quantity
            inventory.last_updated = now

        order.status = "cancelled"

    current_app.logger.info("Order %s cancelled by user %s", order.id, actor_id)
    return order


# Order queries

SORTABLE_ORDER_COLUMNS = {
    "created_at": Order.created_at,
    "total_amount": Order.total_amount_cents,
    "status": Order.status,
    "id": Order.id,
}


def _order_row(order: Order, user: User | None, item_count: int) -> dict:
    data = order.to_dict()
    data["user_name"] = user.name if user else None
    data["user_email"] = user.email if user else None
    data["item_count"] = int(item_count or 0)
    return data


def _orders_query():
    item_counts = (
        db.session.query(Sale.order_id, func.count(Sale.id).label("item_count"))
        .group_by(Sale.order_id)
        .subquery()
    )
    query = (
        db.session.query(Order, User, item_counts.c.item_count)
        .outerjoin(User, User.id == Order.user_id)
        .outerjoin(item_counts, item_counts.c.order_id == Order.id)
    )
    return query


def my_orders(user_id: int, page=None, limit=None) -> dict:
    query = _orders_query().filter(Order.user_id == user_id).order_by(Order.created_at.desc(), Order.id.desc())
    rows, meta = paginate(query, page, limit)
    return {"orders": [_order_row(*row) for row in rows], **meta}


def all_orders(
    search: str | None = None,
    status: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    sort_by: str | None = None,
    sort_order: str | None = None,
    page=None,
    limit=None,
) -> dict:
    """
    Every order with customer name/email and line count.

    search matches the customer's name or email, or an exact order id.
    Dates are inclusive ISO dates; end_date covers the whole day.
    """
    query = _orders_query()

    if search:
        term = f"%{search.strip()}%"
        clauses = [User.name.ilike(term), User.email.ilike(term)]
        if search.strip().isdigit():
            clauses.append(Order.id == int(search.strip()))
        query = query.filter(db.or_(*clauses))

    if status:
        query = query.filter(Order.status == status)

    try:
        start = parse_iso_datetime(start_date)
        end = parse_iso_datetime(end_date)
    except ValueError:
        raise CheckoutError("Invalid date filter; use ISO-8601")
    if start is not None:
        query = query.filter(Order.created_at >= start)
    if end is not None:
        if end_date and len(end_date.strip()) == 10:
            query = query.filter(Order.created_at < end + timedelta(days=1))
        else:
            query = query.filter(Order.created_at <= end)

    column = SORTABLE_ORDER_COLUMNS.get(sort_by or "created_at", Order.created_at)
    if (sort_order or "desc").lower() == "asc":
        query = query.order_by(column.asc(), Order.id.asc())
    else:
        query = query.order_by(column.desc(), Order.id.desc())

    rows, meta = paginate(query, page, limit)
    return {"orders": [_order_row(*row) for row in rows], **meta}


def get_order_details(order_id: int) -> dict:
    """Order header plus its lines with product name, sku and image."""
    row = _orders_query().filter(Order.id == order_id).first()
    if row is None:
        raise CheckoutError("Order not found", 404)

    lines = (
        db.session.query(Sale, Product)
        .outerjoin(Product, Product.id == Sale.product_id)
        .filter(Sale.order_id == order_id)
        .order_by(Sale.id.asc())
        .all()
    )
    items = []
    for sale, product in lines:
        item = sale.to_dict()
        item["product_name"] = product.name if product else None
        item["sku"] = product.sku if product else None
        item["image_url"] = product.image_url if product else None
        items.append(item)

    return {"order": _order_row(*row), "items": items}


def list_sales(page=None, limit=None) -> dict:
    """Sale lines newest first, with product name and sku."""
    query = (
        db.session.query(Sale, Product)
        .outerjoin(Product, Product.id == Sale.product_id)
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
    )
    rows, meta = paginate(query, page, limit)
    sales = []
    for sale, product in rows:
        data = sale.to_dict()
        data["product_name"] = product.name if product else None
        data["sku"] = product.sku if product else None
        sales.append(data)
    return {"sales": sales, **meta}
