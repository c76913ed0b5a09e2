# Overview: Flask API routes for invoices; parses input and returns JSON responses.

# backend/invoicehub/routes/invoices.py
"""
Invoice routes.

Body shape for create/update:
    {
        "customer_id": 3,
        "items": [{"product_id": 7, "quantity": 2, "price": "10.00"}, ...],
        "status": "paid"            # update only
    }

Every write runs as one transaction in invoice_service; a failure returns
the error and leaves stock, invoice and sale exactly as they were.
"""

from flask import Blueprint, current_app, g

from ..decorators import require_auth
from ..errors import ValidationError
from ..services import invoice_service
from ..validation import coerce_int
from ._params import json_body, page_args

invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")

INVOICE_FIELDS = {"customer_id", "items", "status"}


def _invoice_body(*, partial: bool) -> dict:
    data = json_body()
    unknown = set(data) - INVOICE_FIELDS
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")
    if not partial:
        if "status" in data:
            raise ValidationError("Field not allowed: status")
        missing = sorted(f for f in ("customer_id", "items") if f not in data)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    if data.get("customer_id") is not None:
        data["customer_id"] = coerce_int(data["customer_id"], "customer_id")
    return data


@invoices_bp.get("")
@require_auth
def list_invoices_route():
    first, offset = page_args()
    return invoice_service.list_invoices(g.actor, first, offset), 200


@invoices_bp.get("/<int:invoice_id>")
@require_auth
def get_invoice_route(invoice_id: int):
    return invoice_service.get_invoice(g.actor, invoice_id).to_dict(), 200


@invoices_bp.post("")
@require_auth
def create_invoice_route():
    data = _invoice_body(partial=False)
    invoice = invoice_service.create_invoice(g.actor, data["customer_id"], data["items"])
    return invoice.to_dict(), 201


@invoices_bp.patch("/<int:invoice_id>")
@require_auth
def update_invoice_route(invoice_id: int):
    data = _invoice_body(partial=True)
    invoice = invoice_service.update_invoice(
        g.actor,
        invoice_id,
        customer_id=data.get("customer_id"),
        items=data.get("items"),
        status=data.get("status"),
    )
    current_app.logger.info("Invoice updated: id=%s by=%s", invoice_id, g.actor.user_id)
    return invoice.to_dict(), 200


@invoices_bp.delete("/<int:invoice_id>")
@require_auth
def delete_invoice_route(invoice_id: int):
    deleted = invoice_service.delete_invoice(g.actor, invoice_id)
    current_app.logger.info("Invoice deleted: id=%s by=%s", invoice_id, g.actor.user_id)
    return deleted, 200
