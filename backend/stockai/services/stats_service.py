# Overview: Dashboard aggregates (revenue, orders, users, stock, 7-day demand).

"""
Dashboard Statistics

Revenue and order counts exclude cancelled orders. Sale lines without an
order (legacy single-line sales) always count.
"""

from __future__ import annotations

from datetime import timedelta

from sqlalchemy import func

from ..extensions import db
from ..models import Order, Sale, User, Inventory
from ..formats import cents_to_amount, utcnow


def _live_sales():
    return (
        db.session.query(Sale)
        .outerjoin(Order, Order.id == Sale.order_id)
        .filter(db.or_(Sale.order_id.is_(None), Order.status != "cancelled"))
    )


def sales_trend(days: int = 7) -> list[dict]:
    """
    Units sold per day for the last `days` days (oldest first), zero-filled.

    Grouping happens in Python so the query is the same on every backend.
    """
    today = utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    start = today - timedelta(days=days - 1)

    buckets = {(start + timedelta(days=i)).date(): 0 for i in range(days)}
    rows = (
        _live_sales()
        .with_entities(Sale.sale_date, Sale.quantity)
        .filter(Sale.sale_date >= start)
        .all()
    )
    for sale_date, quantity in rows:
        day = sale_date.date()
        if day in buckets:
            buckets[day] += quantity

    return [
        {"name": day.strftime("%a"), "date": day.isoformat(), "demand": demand}
        for day, demand in buckets.items()
    ]


def dashboard_stats() -> dict:
    revenue_cents = _live_sales().with_entities(func.coalesce(func.sum(Sale.total_amount_cents), 0)).scalar()
    orders = db.session.query(func.count(Order.id)).filter(Order.status != "cancelled").scalar()
    users = db.session.query(func.count(User.id)).scalar()
    low_stock = (
        db.session.query(func.count(Inventory.id))
        .filter(Inventory.quantity <= Inventory.low_stock_threshold)
        .scalar()
    )

    return {
        "revenue": cents_to_amount(int(revenue_cents or 0)),
        "orders": int(orders or 0),
        "users": int(users or 0),
        "lowStock": int(low_stock or 0),
        "salesTrend": sales_trend(),
    }
