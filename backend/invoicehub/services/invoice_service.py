# Overview: Service-layer operations for invoices and sales; encapsulates business logic and database work.

"""
Invoice workflow: the only code path that creates, edits or deletes invoices
and their paired sales, and the main client of the stock ledger.

INVARIANTS:
- Invoice.total_cents == sum(quantity * price_cents) over its items.
- A Sale exists iff its Invoice exists, with the same customer and total.
- Creating an invoice deducts stock for every line; editing items moves only
  the per-product difference; deleting restocks everything.
- Changing status never moves stock (cancelled invoices keep their deduction).
- Every operation runs in ONE unit of work: a failure at any step rolls back
  every stock adjustment, document change and activity entry it made.
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..errors import InsufficientStock, InvalidReference, NotFound, ValidationError
from ..models import Customer, Invoice, InvoiceItem, Product, Sale
from ..models.invoices import INVOICE_STATUSES
from ..money import format_cents
from ..time_utils import parse_range_bound
from ..validation import validate_invoice_items
from .activity_service import describe_changes, log_activity
from .authorization import Actor, require_access, require_business_actor, scope_query
from .concurrency import lock_for_update, run_in_transaction
from .pagination import paginate
from .stock_ledger import adjust_stock

logger = logging.getLogger(__name__)


def _resolve_customer(business_id: int, customer_id) -> Customer:
    customer = db.session.get(Customer, customer_id) if isinstance(customer_id, int) else None
    if customer is None:
        raise InvalidReference(f"Customer {customer_id} not found", details={"customer_id": customer_id})
    if customer.business_id != business_id:
        raise InvalidReference(
            f"Customer {customer_id} does not belong to this business",
            details={"customer_id": customer_id},
        )
    return customer


def _resolve_products(lines: list[dict], business_id: int) -> dict[int, Product]:
    """Lock every referenced product (ascending id) and check ownership."""
    product_ids = sorted({line["product_id"] for line in lines})
    products = {
        p.id: p
        for p in lock_for_update(
            db.session.query(Product).filter(Product.id.in_(product_ids)).order_by(Product.id.asc())
        ).all()
    }

    for product_id in product_ids:
        product = products.get(product_id)
        if product is None:
            raise InvalidReference(f"Product {product_id} not found", details={"product_id": product_id})
        if product.business_id != business_id:
            raise InvalidReference(
                f"Product {product_id} does not belong to this business",
                details={"product_id": product_id},
            )
    return products


def _aggregate(lines) -> dict[int, int]:
    """Total quantity per product across lines (dicts or InvoiceItem rows)."""
    totals: dict[int, int] = {}
    for line in lines:
        if isinstance(line, dict):
            product_id, quantity = line["product_id"], line["quantity"]
        else:
            product_id, quantity = line.product_id, line.quantity
        totals[product_id] = totals.get(product_id, 0) + quantity
    return totals


def _validate_on_hand(products: dict[int, Product], requested: dict[int, int]) -> None:
    insufficient = []
    for product_id, qty in requested.items():
        product = products[product_id]
        if product.quantity < qty:
            insufficient.append({
                "product_id": product_id,
                "sku": product.sku,
                "requested_quantity": qty,
                "on_hand": product.quantity,
            })

    if insufficient:
        first = products[insufficient[0]["product_id"]]
        raise InsufficientStock(
            f"Insufficient stock for product {first.name} (SKU: {first.sku})",
            details={"items": insufficient},
        )


def _total_cents(lines: list[dict]) -> int:
    return sum(line["quantity"] * line["price_cents"] for line in lines)


def _build_items(lines: list[dict]) -> list[InvoiceItem]:
    return [
        InvoiceItem(
            position=line["position"],
            product_id=line["product_id"],
            quantity=line["quantity"],
            price_cents=line["price_cents"],
        )
        for line in lines
    ]


def create_invoice(actor: Actor, customer_id, items) -> Invoice:
    """
    Create a pending invoice and its sale, deducting stock for every line.

    Validation (customer, lines, product ownership, aggregated stock) runs
    completely before the first stock adjustment.
    """
    business_id = require_business_actor(actor)

    def _op() -> Invoice:
        customer = _resolve_customer(business_id, customer_id)
        lines = validate_invoice_items(items)
        products = _resolve_products(lines, business_id)
        _validate_on_hand(products, _aggregate(lines))

        for line in lines:
            adjust_stock(line["product_id"], -line["quantity"], actor, "update", "Invoice creation", commit=False)

        total = _total_cents(lines)
        invoice = Invoice(
            business_id=business_id,
            customer_id=customer.id,
            status="pending",
            total_cents=total,
        )
        invoice.items = _build_items(lines)
        db.session.add(invoice)
        db.session.flush()

        sale = Sale(
            invoice_id=invoice.id,
            customer_id=customer.id,
            business_id=business_id,
            total_cents=total,
        )
        db.session.add(sale)
        db.session.flush()

        log_activity(
            actor, "Invoice", "create",
            f'Invoice created for customer "{customer.name}" (Total: {format_cents(total)})',
            entity_id=invoice.id, business_id=business_id,
        )
        log_activity(
            actor, "Sale", "create",
            f'Sale created for customer "{customer.name}" (Total: {format_cents(total)})',
            entity_id=sale.id, business_id=business_id,
        )
        return invoice

    invoice = run_in_transaction(_op)
    logger.info("Invoice created: id=%s business_id=%s user_id=%s", invoice.id, business_id, actor.user_id)
    return invoice


def update_invoice(
    actor: Actor,
    invoice_id: int,
    customer_id=None,
    items=None,
    status: str | None = None,
) -> Invoice:
    """
    Partially update an invoice.

    items, when given, replaces the whole line list. Stock moves by the
    per-product difference between the old and new lines; products dropped
    from the invoice are restocked in full.
    """

    def _op() -> Invoice:
        invoice = lock_for_update(db.session.query(Invoice).filter_by(id=invoice_id)).first()
        if not invoice:
            raise NotFound(f"Invoice {invoice_id} not found")
        require_access(actor, invoice.business_id)
        if status is not None and status not in INVOICE_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(INVOICE_STATUSES)}")

        old = {
            "customer": invoice.customer.name if invoice.customer else None,
            "total": format_cents(invoice.total_cents),
            "status": invoice.status,
        }
        new: dict = {}

        if customer_id is not None:
            customer = _resolve_customer(invoice.business_id, customer_id)
            invoice.customer_id = customer.id
            invoice.customer = customer
            new["customer"] = customer.name

        if items is not None:
            lines = validate_invoice_items(items)
            products = _resolve_products(lines, invoice.business_id)

            new_qty = _aggregate(lines)
            old_qty = _aggregate(invoice.items)

            for product_id, qty in new_qty.items():
                delta = old_qty.get(product_id, 0) - qty
                if delta == 0:
                    continue
                product = products[product_id]
                if delta < 0 and product.quantity + delta < 0:
                    raise InsufficientStock(
                        f"Insufficient stock for product {product.name} (SKU: {product.sku})",
                        details={
                            "product_id": product.id,
                            "sku": product.sku,
                            "on_hand": product.quantity,
                            "requested_delta": delta,
                        },
                    )
                adjust_stock(product_id, delta, actor, "update", "Invoice update", commit=False)

            for product_id, qty in old_qty.items():
                if product_id not in new_qty:
                    adjust_stock(product_id, qty, actor, "update", "Invoice update (product removed)", commit=False)

            # Old rows go first: (invoice_id, position) is unique
            invoice.items.clear()
            db.session.flush()
            invoice.items.extend(_build_items(lines))
            invoice.total_cents = _total_cents(lines)
            new["total"] = format_cents(invoice.total_cents)

        if status is not None:
            invoice.status = status
            new["status"] = status

        db.session.flush()

        sale = invoice.sale
        if sale is not None:
            if sale.customer_id != invoice.customer_id:
                sale.customer_id = invoice.customer_id
            if sale.total_cents != invoice.total_cents:
                sale.total_cents = invoice.total_cents
                log_activity(
                    actor, "Sale", "update",
                    f"Sale updated for invoice (Total: {format_cents(sale.total_cents)})",
                    entity_id=sale.id, business_id=invoice.business_id,
                )
            db.session.flush()

        log_activity(
            actor, "Invoice", "update",
            f"Invoice updated. {describe_changes(old, new, ('customer', 'total', 'status'))}",
            entity_id=invoice.id, business_id=invoice.business_id,
        )
        return invoice

    return run_in_transaction(_op)


def _delete_invoice_locked(actor: Actor, invoice: Invoice) -> dict:
    snapshot = invoice.to_dict()

    for item in invoice.items:
        adjust_stock(item.product_id, item.quantity, actor, "update", "Invoice deletion", commit=False)

    total = format_cents(invoice.total_cents)
    sale = invoice.sale
    if sale is not None:
        sale_id = sale.id
        db.session.delete(sale)
        db.session.flush()
    else:
        sale_id = None

    db.session.delete(invoice)
    db.session.flush()

    log_activity(
        actor, "Invoice", "delete", f"Invoice deleted (Total: {total})",
        entity_id=snapshot["id"], business_id=snapshot["business_id"],
    )
    log_activity(
        actor, "Sale", "delete", f"Sale deleted for invoice (Total: {total})",
        entity_id=sale_id, business_id=snapshot["business_id"],
    )
    return snapshot


def delete_invoice(actor: Actor, invoice_id: int) -> dict:
    """Restock every line, then delete the invoice and its sale. Returns the deleted invoice."""
    def _op() -> dict:
        invoice = lock_for_update(db.session.query(Invoice).filter_by(id=invoice_id)).first()
        if not invoice:
            raise NotFound(f"Invoice {invoice_id} not found")
        require_access(actor, invoice.business_id)
        return _delete_invoice_locked(actor, invoice)

    return run_in_transaction(_op)


def delete_sale(actor: Actor, sale_id: int) -> dict:
    """
    Delete a sale by deleting its invoice (with restock), keeping the
    invoice/sale pairing intact. Returns the deleted sale.
    """
    def _op() -> dict:
        sale = db.session.get(Sale, sale_id)
        if not sale:
            raise NotFound(f"Sale {sale_id} not found")
        require_access(actor, sale.business_id)
        snapshot = sale.to_dict()

        invoice = lock_for_update(db.session.query(Invoice).filter_by(id=sale.invoice_id)).first()
        if invoice is None:
            raise NotFound(f"Invoice {sale.invoice_id} not found")
        _delete_invoice_locked(actor, invoice)
        return snapshot

    return run_in_transaction(_op)


# =============================================================================
# Reads
# =============================================================================

def get_invoice(actor: Actor, invoice_id: int) -> Invoice:
    invoice = db.session.get(Invoice, invoice_id)
    if not invoice:
        raise NotFound(f"Invoice {invoice_id} not found")
    require_access(actor, invoice.business_id)
    return invoice


def list_invoices(actor: Actor, first: int | None = None, offset: int | None = None) -> dict:
    query = scope_query(db.session.query(Invoice), Invoice, actor)
    query = query.order_by(Invoice.created_at.desc(), Invoice.id.desc())
    return paginate(query, first, offset)


def get_sale(actor: Actor, sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise NotFound(f"Sale {sale_id} not found")
    require_access(actor, sale.business_id)
    return sale


def list_sales(actor: Actor, first: int | None = None, offset: int | None = None) -> dict:
    query = scope_query(db.session.query(Sale), Sale, actor)
    query = query.order_by(Sale.created_at.desc(), Sale.id.desc())
    return paginate(query, first, offset)


def sales_report(actor: Actor, start_date: str | None, end_date: str | None) -> dict:
    """
    Sales created between start_date and end_date, both inclusive.

    Date-only bounds cover whole days (an end date means end of that day).
    Scoped like list_sales.
    """
    if not start_date or not end_date:
        raise ValidationError("start_date and end_date are required")
    try:
        start = parse_range_bound(start_date)
        end = parse_range_bound(end_date, end=True)
    except ValueError:
        raise ValidationError("start_date and end_date must be ISO-8601 dates or datetimes")
    if start > end:
        raise ValidationError("start_date must be on or before end_date")

    query = scope_query(db.session.query(Sale), Sale, actor)
    sales = (
        query.filter(Sale.created_at >= start, Sale.created_at <= end)
        .order_by(Sale.created_at.asc(), Sale.id.asc())
        .all()
    )
    total = sum(s.total_cents for s in sales)
    return {
        "start_date": start_date,
        "end_date": end_date,
        "sales": [s.to_dict() for s in sales],
        "count": len(sales),
        "total_cents": total,
        "total": format_cents(total),
    }
