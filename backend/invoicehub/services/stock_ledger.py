# Overview: Service-layer operations for the stock ledger; encapsulates business logic and database work.

from __future__ import annotations

import logging

from ..extensions import db
from ..errors import InsufficientStock, NotFound, ValidationError
from ..models import Product
from .activity_service import log_activity
from .authorization import Actor, require_access
from .concurrency import lock_for_update, run_in_transaction

"""
Stock ledger invariants (authoritative)

- Product.quantity is written only here once the product exists.
- quantity never goes negative: the check runs against the locked row,
  before any write, and a failing adjustment leaves the row untouched.
- low_stock_alert == (quantity <= low_stock_amount) after every write;
  recompute_low_stock() is the only place the flag is derived.
- Each adjustment that changes quantity or flips the alert appends one
  activity entry in the same transaction. No-op adjustments write nothing.
- Atomic per product: SELECT ... FOR UPDATE plus the version_id column.
"""

logger = logging.getLogger(__name__)


def recompute_low_stock(product: Product) -> bool:
    """Derive low_stock_alert from quantity and threshold. Returns True if it flipped."""
    alert = product.quantity <= product.low_stock_amount
    changed = bool(product.low_stock_alert) != alert
    product.low_stock_alert = alert
    return changed


def _alert_text(product: Product) -> str:
    return "on" if product.low_stock_alert else "off"


def _load_locked(product_id: int) -> Product:
    product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
    if not product:
        raise NotFound(f"Product {product_id} not found")
    return product


def _apply_delta(product: Product, delta: int, actor: Actor, action: str, reason_prefix: str) -> Product:
    new_quantity = product.quantity + delta
    if new_quantity < 0:
        raise InsufficientStock(
            f"Insufficient stock for product {product.name} (SKU: {product.sku})",
            details={
                "product_id": product.id,
                "sku": product.sku,
                "on_hand": product.quantity,
                "requested_delta": delta,
            },
        )

    product.quantity = new_quantity
    alert_changed = recompute_low_stock(product)

    if delta == 0 and not alert_changed:
        return product

    db.session.flush()

    logger.info(
        "Stock adjusted: product_id=%s sku=%s delta=%+d quantity=%s low_stock_alert=%s (%s)",
        product.id, product.sku, delta, product.quantity, product.low_stock_alert, reason_prefix,
    )
    log_activity(
        actor,
        "Product",
        action,
        f'{reason_prefix}: product "{product.name}" (SKU: {product.sku}) quantity {delta:+d}, '
        f"now {product.quantity}; low stock alert {_alert_text(product)}",
        entity_id=product.id,
        business_id=product.business_id,
    )
    return product


def adjust_stock(
    product_id: int,
    delta: int,
    actor: Actor,
    action: str = "update",
    reason_prefix: str = "Stock adjustment",
    *,
    commit: bool = True,
) -> Product:
    """
    Apply a signed quantity change to one product.

    commit=True: runs in its own transaction, retried on lock/version conflicts.
    commit=False: joins the caller's unit of work; the caller commits or
    rolls back (the invoice workflow uses this so every adjustment of one
    invoice operation lands or fails together).

    Raises NotFound, Unauthorized (foreign product), InsufficientStock.
    """
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise ValidationError("delta must be an integer")

    def _op() -> Product:
        product = _load_locked(product_id)
        require_access(actor, product.business_id)
        return _apply_delta(product, delta, actor, action, reason_prefix)

    if not commit:
        return _op()
    return run_in_transaction(_op)


def set_low_stock_amount(product: Product, amount: int, actor: Actor, reason_prefix: str = "Low stock threshold update") -> Product:
    """
    Change the low-stock threshold of a (locked) product inside the caller's
    transaction. Audited only when the alert flag flips.
    """
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise ValidationError("low_stock_amount must be an integer >= 0")

    product.low_stock_amount = amount
    if recompute_low_stock(product):
        db.session.flush()
        log_activity(
            actor,
            "Product",
            "update",
            f'{reason_prefix}: product "{product.name}" (SKU: {product.sku}) threshold {amount}, '
            f"quantity {product.quantity}; low stock alert {_alert_text(product)}",
            entity_id=product.id,
            business_id=product.business_id,
        )
    return product
