from __future__ import annotations

from ..extensions import db
from ..money import format_cents
from ..time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data with on-hand stock.

    MULTI-TENANT: Products are scoped to a business via business_id.
    SKUs are unique within a business: UniqueConstraint("business_id", "sku").

    STOCK INVARIANTS:
    - quantity >= 0, enforced by the stock ledger before every write
      and by a CHECK constraint as the last line.
    - low_stock_alert == (quantity <= low_stock_amount), recomputed by the
      stock ledger whenever quantity or low_stock_amount changes.
    - quantity is only written through services.stock_ledger after creation.

    version_id gives optimistic locking: two transactions that both loaded
    the same row cannot both write it (StaleDataError -> retry).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("business_id", "sku", name="uq_products_business_sku"),
        db.CheckConstraint("quantity >= 0", name="quantity_non_negative"),
        db.Index("ix_products_business_name", "business_id", "name"),
        db.Index("ix_products_business_low_stock", "business_id", "low_stock_alert"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    brand = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=False)

    quantity = db.Column(db.Integer, nullable=False, default=0)

    # Catalog price in cents; invoice lines carry their own price
    price_cents = db.Column(db.Integer, nullable=False)

    low_stock_amount = db.Column(db.Integer, nullable=False, default=10)
    low_stock_alert = db.Column(db.Boolean, nullable=False, default=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    business = db.relationship("Business", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} qty={self.quantity} business_id={self.business_id}>"

    def to_dict(self, include_business: bool = True) -> dict:
        data = {
            "id": self.id,
            "business_id": self.business_id,
            "name": self.name,
            "brand": self.brand,
            "sku": self.sku,
            "quantity": self.quantity,
            "price_cents": self.price_cents,
            "price": format_cents(self.price_cents),
            "low_stock_amount": self.low_stock_amount,
            "low_stock_alert": self.low_stock_alert,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_business:
            data["business"] = self.business.to_dict() if self.business else None
        return data
