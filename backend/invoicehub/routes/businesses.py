# Overview: Flask API routes for businesses; parses input and returns JSON responses.

# backend/invoicehub/routes/businesses.py
"""
Business (tenant) routes.

Listing, creating, updating and deleting are platform-only; a business
account may read and search its own business.
"""

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth
from ..models import Business
from ..services import business_service
from ..validation import BUSINESS_POLICY, validate_payload
from ._params import json_body, page_args

businesses_bp = Blueprint("businesses", __name__, url_prefix="/api/businesses")


@businesses_bp.get("")
@require_auth
def list_businesses_route():
    first, offset = page_args()
    return business_service.list_businesses(g.actor, first, offset), 200


@businesses_bp.get("/search")
@require_auth
def search_businesses_route():
    first, offset = page_args()
    return business_service.search_businesses(g.actor, request.args.get("search_term"), first, offset), 200


@businesses_bp.get("/<int:business_id>")
@require_auth
def get_business_route(business_id: int):
    return business_service.get_business(g.actor, business_id).to_dict(), 200


@businesses_bp.post("")
@require_auth
def create_business_route():
    patch = validate_payload(model=Business, payload=json_body(), policy=BUSINESS_POLICY, partial=False)
    business = business_service.create_business(g.actor, patch)
    current_app.logger.info("Business created: id=%s bid=%s", business.id, business.bid)
    return business.to_dict(), 201


@businesses_bp.patch("/<int:business_id>")
@require_auth
def update_business_route(business_id: int):
    patch = validate_payload(model=Business, payload=json_body(), policy=BUSINESS_POLICY, partial=True)
    return business_service.update_business(g.actor, business_id, patch).to_dict(), 200


@businesses_bp.delete("/<int:business_id>")
@require_auth
def delete_business_route(business_id: int):
    return business_service.delete_business(g.actor, business_id), 200
