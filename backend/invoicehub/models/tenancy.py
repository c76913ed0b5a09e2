from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

BUSINESS_TYPES = ("store", "franchise", "platform")


class Business(db.Model):
    """
    Multi-tenant root: every tenant is a Business.

    Products, customers, invoices and sales all carry business_id and are
    only visible to accounts of the same business (platform accounts see
    everything).

    bid is the human-facing sequential number issued by the "businessId"
    sequence; id stays the stable internal key.
    """
    __tablename__ = "businesses"
    __table_args__ = (
        db.Index("ix_businesses_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    bid = db.Column(db.Integer, nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    address = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    type = db.Column(db.String(16), nullable=False, default="store")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Business id={self.id} bid={self.bid} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "bid": self.bid,
            "name": self.name,
            "address": self.address,
            "phone": self.phone,
            "type": self.type,
            "created_at": to_utc_z(self.created_at),
        }


class Sequence(db.Model):
    """
    Named monotonically increasing counters.

    Incremented with a single UPDATE ... SET value = value + 1 so concurrent
    callers never receive the same number.
    """
    __tablename__ = "sequences"

    name = db.Column(db.String(64), primary_key=True)
    value = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "value": self.value,
            "updated_at": to_utc_z(self.updated_at),
        }
