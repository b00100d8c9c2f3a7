from __future__ import annotations

from ..extensions import db
from ..formats import to_utc_z, cents_to_amount


class Order(db.Model):
    """
    Checkout transaction owned by a user.

    LIFECYCLE: created once at checkout (status "completed"); afterwards only
    status transitions happen (e.g. completed -> cancelled).

    payment_session_id references the gateway checkout session that paid
    for the order. It is NOT unique: replaying a verified session creates
    another order.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_user_created", "user_id", "created_at"),
        db.Index("ix_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default="completed", index=True)
    payment_session_id = db.Column(db.String(255), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", backref=db.backref("orders", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "total_amount": cents_to_amount(self.total_amount_cents),
            "total_amount_cents": self.total_amount_cents,
            "status": self.status,
            "payment_session_id": self.payment_session_id,
            "created_at": to_utc_z(self.created_at),
        }


class Sale(db.Model):
    """One line item of an order; independently queryable for reporting."""
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_sale_date", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=True, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    total_amount_cents = db.Column(db.Integer, nullable=False)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", backref=db.backref("sales", lazy=True, order_by="Sale.id"))
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "total_amount": cents_to_amount(self.total_amount_cents),
            "total_amount_cents": self.total_amount_cents,
            "sale_date": to_utc_z(self.sale_date),
        }
