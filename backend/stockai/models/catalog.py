from __future__ import annotations

from ..extensions import db
from ..formats import to_utc_z, cents_to_amount


class Product(db.Model):
    """
    Catalog item.

    OWNERSHIP: owner_id is set when a tenant creates the product. Tenants
    only see and edit their own products; staff roles see everything.

    Price is authoritative in cents; the API exposes a decimal "price".
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_owner_created", "owner_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    # SKU is optional, but unique when present
    sku = db.Column(db.String(64), nullable=True, unique=True)
    category = db.Column(db.String(128), nullable=True, index=True)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="active")
    image_url = db.Column(db.String(512), nullable=True)

    owner_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    owner = db.relationship("User", backref=db.backref("products", lazy=True))
    inventory = db.relationship(
        "Inventory",
        uselist=False,
        back_populates="product",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "category": self.category,
            "price": cents_to_amount(self.price_cents),
            "price_cents": self.price_cents,
            "description": self.description,
            "status": self.status,
            "image_url": self.image_url,
            "owner_id": self.owner_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Inventory(db.Model):
    """
    Stock level for one product (one-to-one).

    INVARIANT: quantity never goes negative. Checkout enforces this with a
    read-then-decrement inside its transaction; there is no CHECK constraint.
    """
    __tablename__ = "inventory"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    quantity = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=10)
    last_updated = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", back_populates="inventory")

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.low_stock_threshold

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "low_stock_threshold": self.low_stock_threshold,
            "last_updated": to_utc_z(self.last_updated),
        }
