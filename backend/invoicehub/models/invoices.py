from __future__ import annotations

from ..extensions import db
from ..money import format_cents
from ..time_utils import to_utc_z, utcnow

INVOICE_STATUSES = ("pending", "paid", "cancelled")


class Invoice(db.Model):
    """
    Invoice document.

    Every invoice has exactly one paired Sale (created and deleted with it).
    Stock is moved when items are written, not when status changes:
    cancelling an invoice does not restock.

    total_cents is always the sum of quantity * price_cents over its items.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.Index("ix_invoices_business_created", "business_id", "created_at"),
        db.Index("ix_invoices_business_status", "business_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    business = db.relationship("Business", backref=db.backref("invoices", lazy=True))
    customer = db.relationship("Customer", backref=db.backref("invoices", lazy=True))
    items = db.relationship(
        "InvoiceItem",
        back_populates="invoice",
        order_by="InvoiceItem.position",
        cascade="all, delete-orphan",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Invoice id={self.id} status={self.status} total_cents={self.total_cents}>"

    def to_dict(self, include_relations: bool = True) -> dict:
        data = {
            "id": self.id,
            "business_id": self.business_id,
            "customer_id": self.customer_id,
            "status": self.status,
            "total_cents": self.total_cents,
            "total": format_cents(self.total_cents),
            "items": [item.to_dict(include_product=include_relations) for item in self.items],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
        if include_relations:
            data["customer"] = self.customer.to_dict(include_business=False) if self.customer else None
            data["business"] = self.business.to_dict() if self.business else None
        return data


class InvoiceItem(db.Model):
    """Ordered line on an invoice. Lines are replaced wholesale on update."""
    __tablename__ = "invoice_items"
    __table_args__ = (
        db.UniqueConstraint("invoice_id", "position", name="uq_invoice_items_invoice_position"),
        db.CheckConstraint("quantity > 0", name="quantity_positive"),
        db.CheckConstraint("price_cents >= 0", name="price_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    position = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)

    invoice = db.relationship("Invoice", back_populates="items")
    product = db.relationship("Product")

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.price_cents

    def to_dict(self, include_product: bool = True) -> dict:
        data = {
            "position": self.position,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "price_cents": self.price_cents,
            "price": format_cents(self.price_cents),
            "line_total_cents": self.line_total_cents,
        }
        if include_product:
            data["product"] = self.product.to_dict(include_business=False) if self.product else None
        return data
