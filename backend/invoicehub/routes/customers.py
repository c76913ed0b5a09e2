# Overview: Flask API routes for customers; parses input and returns JSON responses.

# backend/invoicehub/routes/customers.py
"""Customer routes, scoped to the caller's business."""

from flask import Blueprint, g

from ..decorators import require_auth
from ..models import Customer
from ..services import customers_service
from ..validation import CUSTOMER_POLICY, validate_payload
from ._params import json_body, page_args

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
def list_customers_route():
    first, offset = page_args()
    return customers_service.list_customers(g.actor, first, offset), 200


@customers_bp.get("/<int:customer_id>")
@require_auth
def get_customer_route(customer_id: int):
    return customers_service.get_customer(g.actor, customer_id).to_dict(), 200


@customers_bp.post("")
@require_auth
def create_customer_route():
    patch = validate_payload(model=Customer, payload=json_body(), policy=CUSTOMER_POLICY, partial=False)
    return customers_service.create_customer(g.actor, patch).to_dict(), 201


@customers_bp.patch("/<int:customer_id>")
@require_auth
def update_customer_route(customer_id: int):
    patch = validate_payload(model=Customer, payload=json_body(), policy=CUSTOMER_POLICY, partial=True)
    return customers_service.update_customer(g.actor, customer_id, patch).to_dict(), 200


@customers_bp.delete("/<int:customer_id>")
@require_auth
def delete_customer_route(customer_id: int):
    return customers_service.delete_customer(g.actor, customer_id), 200
