# Overview: Service-layer operations for customers; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import DuplicateKey, NotFound, ReferenceInUse
from ..models import Customer, Invoice
from ..validation import enforce_rules_customer
from .activity_service import describe_changes, log_activity
from .authorization import Actor, require_access, require_business_actor, scope_query
from .concurrency import lock_for_update, run_in_transaction
from .pagination import paginate

CUSTOMER_MUTABLE_FIELDS = ("name", "email", "phone", "address")


def _ensure_email_available(business_id: int, email: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Customer.id).filter(Customer.business_id == business_id, Customer.email == email)
    if exclude_id is not None:
        query = query.filter(Customer.id != exclude_id)
    if query.first():
        raise DuplicateKey(f"Email {email} already exists in this business", details={"email": email})


def create_customer(actor: Actor, patch: dict) -> Customer:
    business_id = require_business_actor(actor)
    enforce_rules_customer(patch)

    def _op() -> Customer:
        _ensure_email_available(business_id, patch["email"])
        customer = Customer(business_id=business_id, **{k: patch.get(k) for k in CUSTOMER_MUTABLE_FIELDS})
        db.session.add(customer)
        try:
            db.session.flush()
        except IntegrityError:
            raise DuplicateKey(f"Email {patch['email']} already exists in this business", details={"email": patch["email"]})

        log_activity(
            actor, "Customer", "create",
            f'Customer "{customer.name}" (Email: {customer.email}) created',
            entity_id=customer.id, business_id=business_id,
        )
        return customer

    return run_in_transaction(_op)


def update_customer(actor: Actor, customer_id: int, patch: dict) -> Customer:
    enforce_rules_customer(patch)

    def _op() -> Customer:
        customer = lock_for_update(db.session.query(Customer).filter_by(id=customer_id)).first()
        if not customer:
            raise NotFound(f"Customer {customer_id} not found")
        require_access(actor, customer.business_id)

        old = {k: getattr(customer, k) for k in CUSTOMER_MUTABLE_FIELDS}
        label = f'Customer "{customer.name}" (Email: {customer.email})'

        if "email" in patch and patch["email"] != customer.email:
            _ensure_email_available(customer.business_id, patch["email"], exclude_id=customer.id)

        for key in CUSTOMER_MUTABLE_FIELDS:
            if key in patch:
                setattr(customer, key, patch[key])

        try:
            db.session.flush()
        except IntegrityError:
            raise DuplicateKey(f"Email {patch.get('email')} already exists in this business", details={"email": patch.get("email")})

        log_activity(
            actor, "Customer", "update",
            f"{label} updated. {describe_changes(old, patch, CUSTOMER_MUTABLE_FIELDS)}",
            entity_id=customer.id, business_id=customer.business_id,
        )
        return customer

    return run_in_transaction(_op)


def delete_customer(actor: Actor, customer_id: int) -> dict:
    """Delete a customer. Refused while any invoice references it."""
    def _op() -> dict:
        customer = lock_for_update(db.session.query(Customer).filter_by(id=customer_id)).first()
        if not customer:
            raise NotFound(f"Customer {customer_id} not found")
        require_access(actor, customer.business_id)

        if db.session.query(Invoice.id).filter(Invoice.customer_id == customer.id).first():
            raise ReferenceInUse(
                f'Customer "{customer.name}" has invoices and cannot be deleted',
                details={"customer_id": customer.id},
            )

        snapshot = customer.to_dict()
        db.session.delete(customer)
        db.session.flush()
        log_activity(
            actor, "Customer", "delete",
            f'Customer "{snapshot["name"]}" (Email: {snapshot["email"]}) deleted',
            entity_id=snapshot["id"], business_id=snapshot["business_id"],
        )
        return snapshot

    return run_in_transaction(_op)


def get_customer(actor: Actor, customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise NotFound(f"Customer {customer_id} not found")
    require_access(actor, customer.business_id)
    return customer


def list_customers(actor: Actor, first: int | None = None, offset: int | None = None) -> dict:
    query = scope_query(db.session.query(Customer), Customer, actor)
    query = query.order_by(Customer.name.asc(), Customer.id.asc())
    return paginate(query, first, offset)
