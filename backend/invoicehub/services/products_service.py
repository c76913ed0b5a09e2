# Overview: Service-layer operations for products; encapsulates business logic and database work.

"""
Products service with multi-tenant support.

MULTI-TENANT: Products belong to exactly one business.
- create_product places the product in the actor's business
- reads, updates and deletes check the product's business through the gate
- search_products may target another business only for platform actors
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import DuplicateKey, NotFound, ReferenceInUse, Unauthorized, ValidationError
from ..models import InvoiceItem, Product
from ..money import format_cents
from ..validation import enforce_rules_product
from .activity_service import describe_changes, log_activity
from .authorization import Actor, require_access, require_authenticated, require_business_actor, scope_query
from .concurrency import lock_for_update, run_in_transaction
from .pagination import paginate
from .stock_ledger import adjust_stock, recompute_low_stock, set_low_stock_amount

PRODUCT_MUTABLE_FIELDS = ("name", "brand", "sku", "price_cents")


def _ensure_sku_available(business_id: int, sku: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Product.id).filter(Product.business_id == business_id, Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise DuplicateKey(f"SKU {sku} already exists in this business", details={"sku": sku})


def create_product(actor: Actor, patch: dict) -> Product:
    """Create a product in the actor's business from a validated patch."""
    business_id = require_business_actor(actor)
    enforce_rules_product(patch)

    def _op() -> Product:
        _ensure_sku_available(business_id, patch["sku"])

        product = Product(
            business_id=business_id,
            name=patch["name"],
            brand=patch["brand"],
            sku=patch["sku"],
            quantity=patch["quantity"],
            price_cents=patch["price_cents"],
            low_stock_amount=patch.get("low_stock_amount")
            if patch.get("low_stock_amount") is not None
            else current_app.config["DEFAULT_LOW_STOCK_AMOUNT"],
        )
        recompute_low_stock(product)
        db.session.add(product)
        try:
            db.session.flush()
        except IntegrityError:
            raise DuplicateKey(f"SKU {patch['sku']} already exists in this business", details={"sku": patch["sku"]})

        log_activity(
            actor, "Product", "create",
            f'Product "{product.name}" (SKU: {product.sku}) created',
            entity_id=product.id, business_id=business_id,
        )
        return product

    return run_in_transaction(_op)


def update_product(actor: Actor, product_id: int, patch: dict) -> Product:
    """
    Partial update.

    A quantity change becomes a stock ledger adjustment ("Manual stock
    update"); a threshold change goes through set_low_stock_amount so the
    alert flag is never written anywhere else.
    """
    enforce_rules_product(patch)

    def _op() -> Product:
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if not product:
            raise NotFound(f"Product {product_id} not found")
        require_access(actor, product.business_id)

        old = {
            "name": product.name,
            "brand": product.brand,
            "sku": product.sku,
            "quantity": product.quantity,
            "price": format_cents(product.price_cents),
            "low_stock_amount": product.low_stock_amount,
        }
        label = f'Product "{product.name}" (SKU: {product.sku})'

        if "sku" in patch and patch["sku"] != product.sku:
            _ensure_sku_available(product.business_id, patch["sku"], exclude_id=product.id)

        for key in PRODUCT_MUTABLE_FIELDS:
            if key in patch:
                setattr(product, key, patch[key])

        if "low_stock_amount" in patch and patch["low_stock_amount"] != product.low_stock_amount:
            set_low_stock_amount(product, patch["low_stock_amount"], actor, "Manual threshold update")

        if "quantity" in patch:
            delta = patch["quantity"] - product.quantity
            if delta:
                adjust_stock(product.id, delta, actor, "update", "Manual stock update", commit=False)

        try:
            db.session.flush()
        except IntegrityError:
            raise DuplicateKey(f"SKU {patch.get('sku')} already exists in this business", details={"sku": patch.get("sku")})

        new = {
            "name": product.name,
            "brand": product.brand,
            "sku": product.sku,
            "quantity": product.quantity,
            "price": format_cents(product.price_cents),
            "low_stock_amount": product.low_stock_amount,
        }
        log_activity(
            actor, "Product", "update",
            f"{label} updated. {describe_changes(old, new, new.keys())}",
            entity_id=product.id, business_id=product.business_id,
        )
        return product

    return run_in_transaction(_op)


def delete_product(actor: Actor, product_id: int) -> dict:
    """Delete a product. Refused while any invoice line references it."""
    def _op() -> dict:
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if not product:
            raise NotFound(f"Product {product_id} not found")
        require_access(actor, product.business_id)

        in_use = db.session.query(InvoiceItem.id).filter(InvoiceItem.product_id == product.id).first()
        if in_use:
            raise ReferenceInUse(
                f'Product "{product.name}" is referenced by invoices and cannot be deleted',
                details={"product_id": product.id},
            )

        snapshot = product.to_dict()
        db.session.delete(product)
        db.session.flush()
        log_activity(
            actor, "Product", "delete",
            f'Product "{snapshot["name"]}" (SKU: {snapshot["sku"]}) deleted',
            entity_id=snapshot["id"], business_id=snapshot["business_id"],
        )
        return snapshot

    return run_in_transaction(_op)


def get_product(actor: Actor, product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFound(f"Product {product_id} not found")
    require_access(actor, product.business_id)
    return product


def list_products(actor: Actor, first: int | None = None, offset: int | None = None) -> dict:
    query = scope_query(db.session.query(Product), Product, actor)
    query = query.order_by(Product.name.asc(), Product.id.asc())
    return paginate(query, first, offset)


def list_low_stock_products(actor: Actor, first: int | None = None, offset: int | None = None) -> dict:
    query = scope_query(db.session.query(Product), Product, actor).filter(Product.low_stock_alert.is_(True))
    query = query.order_by(Product.quantity.asc(), Product.name.asc(), Product.id.asc())
    return paginate(query, first, offset)


def search_products(
    actor: Actor,
    search_term: str | None,
    business_id: int | None = None,
    first: int | None = None,
    offset: int | None = None,
) -> dict:
    """
    Case-insensitive substring search over name, brand and SKU.

    business_id narrows the search; non-platform actors may only pass their
    own business.
    """
    require_authenticated(actor)
    term = (search_term or "").strip()
    if not term:
        raise ValidationError("search_term is required")

    if business_id is not None and not actor.is_platform and business_id != actor.business_id:
        raise Unauthorized("Unauthorized")

    query = scope_query(db.session.query(Product), Product, actor)
    if business_id is not None:
        query = query.filter(Product.business_id == business_id)

    pattern = f"%{term}%"
    query = query.filter(
        or_(Product.name.ilike(pattern), Product.brand.ilike(pattern), Product.sku.ilike(pattern))
    ).order_by(Product.name.asc(), Product.id.asc())
    return paginate(query, first, offset)
