# Overview: Service-layer operations for businesses; encapsulates business logic and database work.

"""
Business (tenant) management.

Creating, updating and deleting businesses is reserved to platform accounts.
bid is allocated from the "businessId" sequence and never reused.
"""
from __future__ import annotations

from sqlalchemy import String, cast, or_

from ..extensions import db
from ..errors import NotFound, ReferenceInUse, ValidationError
from ..models import Business, Customer, Invoice, Product, SessionToken, User
from ..validation import enforce_rules_business
from .activity_service import describe_changes, log_activity
from .authorization import Actor, require_access, require_authenticated, require_platform
from .concurrency import lock_for_update, run_in_transaction
from .pagination import paginate
from .sequence_service import BUSINESS_ID_SEQUENCE, next_sequence

BUSINESS_MUTABLE_FIELDS = ("name", "address", "phone", "type")


def create_business(actor: Actor, patch: dict) -> Business:
    require_platform(actor)
    enforce_rules_business(patch)

    def _op() -> Business:
        bid = next_sequence(BUSINESS_ID_SEQUENCE)
        business = Business(
            bid=bid,
            name=patch["name"],
            address=patch.get("address"),
            phone=patch.get("phone"),
            type=patch.get("type") or "store",
        )
        db.session.add(business)
        db.session.flush()
        log_activity(
            actor, "Business", "create",
            f'Business "{business.name}" (BID: {bid}) created',
            entity_id=business.id, business_id=business.id,
        )
        return business

    return run_in_transaction(_op)


def update_business(actor: Actor, business_id: int, patch: dict) -> Business:
    require_platform(actor)
    enforce_rules_business(patch)

    def _op() -> Business:
        business = lock_for_update(db.session.query(Business).filter_by(id=business_id)).first()
        if not business:
            raise NotFound(f"Business {business_id} not found")

        old = {k: getattr(business, k) for k in BUSINESS_MUTABLE_FIELDS}
        label = f'Business "{business.name}" (BID: {business.bid})'
        for key in BUSINESS_MUTABLE_FIELDS:
            if key in patch:
                setattr(business, key, patch[key])
        db.session.flush()

        log_activity(
            actor, "Business", "update",
            f"{label} updated. {describe_changes(old, patch, BUSINESS_MUTABLE_FIELDS)}",
            entity_id=business.id, business_id=business.id,
        )
        return business

    return run_in_transaction(_op)


def delete_business(actor: Actor, business_id: int) -> dict:
    """Delete a business. Refused while users, products, customers or invoices belong to it."""
    require_platform(actor)

    def _op() -> dict:
        business = lock_for_update(db.session.query(Business).filter_by(id=business_id)).first()
        if not business:
            raise NotFound(f"Business {business_id} not found")

        dependents = {
            "users": db.session.query(User.id).filter(User.business_id == business.id).count(),
            "products": db.session.query(Product.id).filter(Product.business_id == business.id).count(),
            "customers": db.session.query(Customer.id).filter(Customer.business_id == business.id).count(),
            "invoices": db.session.query(Invoice.id).filter(Invoice.business_id == business.id).count(),
        }
        in_use = {name: count for name, count in dependents.items() if count}
        if in_use:
            raise ReferenceInUse(
                f'Business "{business.name}" still has dependent records and cannot be deleted',
                details=in_use,
            )

        snapshot = business.to_dict()
        # Revoked sessions may still point at the business
        db.session.query(SessionToken).filter(SessionToken.business_id == business.id).delete(synchronize_session=False)
        db.session.delete(business)
        db.session.flush()
        log_activity(
            actor, "Business", "delete",
            f'Business "{snapshot["name"]}" (BID: {snapshot["bid"]}) deleted',
            entity_id=snapshot["id"], business_id=None,
        )
        return snapshot

    return run_in_transaction(_op)


def get_business(actor: Actor, business_id: int) -> Business:
    require_access(actor, business_id)
    business = db.session.get(Business, business_id)
    if not business:
        raise NotFound(f"Business {business_id} not found")
    return business


def list_businesses(actor: Actor, first: int | None = None, offset: int | None = None) -> dict:
    require_platform(actor)
    query = db.session.query(Business).order_by(Business.bid.asc())
    return paginate(query, first, offset)


def search_businesses(actor: Actor, search_term: str | None, first: int | None = None, offset: int | None = None) -> dict:
    """
    Substring search over name, address, phone and bid.

    Platform actors search every business; others only ever match their own.
    """
    require_authenticated(actor)
    term = (search_term or "").strip()
    if not term:
        raise ValidationError("search_term is required")

    query = db.session.query(Business)
    if not actor.is_platform:
        query = query.filter(Business.id == actor.business_id)

    pattern = f"%{term}%"
    query = query.filter(
        or_(
            Business.name.ilike(pattern),
            Business.address.ilike(pattern),
            Business.phone.ilike(pattern),
            cast(Business.bid, String).ilike(pattern),
        )
    ).order_by(Business.bid.asc())
    return paginate(query, first, offset)
