# Overview: Flask API routes for sales; parses input and returns JSON responses.

# backend/invoicehub/routes/sales.py
"""
Sales routes.

Sales are created and updated only through invoices; DELETE removes the
paired invoice as well (restocking its items).
"""

from flask import Blueprint, g, request

from ..decorators import require_auth
from ..services import invoice_service
from ._params import page_args

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
def list_sales_route():
    first, offset = page_args()
    return invoice_service.list_sales(g.actor, first, offset), 200


@sales_bp.get("/report")
@require_auth
def sales_report_route():
    """
    Query params:
    - start_date: ISO date or datetime (inclusive)
    - end_date: ISO date or datetime (inclusive; a date means end of that day)
    """
    return invoice_service.sales_report(g.actor, request.args.get("start_date"), request.args.get("end_date")), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    return invoice_service.get_sale(g.actor, sale_id).to_dict(), 200


@sales_bp.delete("/<int:sale_id>")
@require_auth
def delete_sale_route(sale_id: int):
    return invoice_service.delete_sale(g.actor, sale_id), 200
