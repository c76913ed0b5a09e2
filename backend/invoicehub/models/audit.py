from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class ActivityLog(db.Model):
    """
    Append-only business audit trail.

    Rows are written in the same transaction as the change they describe and
    never updated, except that deleting a user detaches their entries
    (user_id -> NULL).
    """
    __tablename__ = "activity_logs"
    __table_args__ = (
        db.Index("ix_activity_logs_user_occurred", "user_id", "occurred_at"),
        db.Index("ix_activity_logs_entity", "entity_name", "entity_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    business_id = db.Column(db.Integer, nullable=True, index=True)

    # What it refers to (generic pointer)
    entity_name = db.Column(db.String(64), nullable=False)  # e.g., Product, Invoice, Sale
    entity_id = db.Column(db.Integer, nullable=True)

    action = db.Column(db.String(64), nullable=False, index=True)  # e.g., Invoice create
    description = db.Column(db.Text, nullable=False)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now(), index=True)

    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "username": self.user.username if self.user else None,
            "business_id": self.business_id,
            "entity_name": self.entity_name,
            "entity_id": self.entity_id,
            "action": self.action,
            "description": self.description,
            "when": to_utc_z(self.occurred_at),
        }
