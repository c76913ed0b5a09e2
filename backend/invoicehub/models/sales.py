from __future__ import annotations

from ..extensions import db
from ..money import format_cents
from ..time_utils import to_utc_z, utcnow


class Sale(db.Model):
    """
    Sale record mirroring one invoice.

    Created and deleted only by the invoice workflow; customer_id and
    total_cents always match the paired invoice.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_business_created", "business_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, unique=True, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)

    total_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    invoice = db.relationship("Invoice", backref=db.backref("sale", uselist=False, lazy=True))
    customer = db.relationship("Customer")
    business = db.relationship("Business")

    def __repr__(self) -> str:
        return f"<Sale id={self.id} invoice_id={self.invoice_id} total_cents={self.total_cents}>"

    def to_dict(self, include_relations: bool = True) -> dict:
        data = {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "customer_id": self.customer_id,
            "business_id": self.business_id,
            "total_cents": self.total_cents,
            "total": format_cents(self.total_cents),
            "created_at": to_utc_z(self.created_at),
        }
        if include_relations:
            data["customer"] = self.customer.to_dict(include_business=False) if self.customer else None
            data["business"] = self.business.to_dict() if self.business else None
        return data
