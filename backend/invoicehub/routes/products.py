# Overview: Flask API routes for products; parses input and returns JSON responses.

# backend/invoicehub/routes/products.py
"""
Product management routes with multi-tenant support.

MULTI-TENANT: All product operations are scoped to the caller's business
(platform accounts read across businesses but cannot create products).

Prices are accepted as a decimal "price" ("10.50") or as integer
"price_cents"; quantity edits become stock ledger adjustments.
"""
from flask import Blueprint, current_app, g, request

from ..decorators import require_auth
from ..models import Product
from ..services import products_service
from ..validation import PRODUCT_POLICY, normalize_price, validate_payload
from ._params import int_arg, json_body, page_args

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products_route():
    first, offset = page_args()
    return products_service.list_products(g.actor, first, offset), 200


@products_bp.get("/search")
@require_auth
def search_products_route():
    first, offset = page_args()
    return products_service.search_products(
        g.actor,
        request.args.get("search_term"),
        business_id=int_arg("business_id"),
        first=first,
        offset=offset,
    ), 200


@products_bp.get("/low-stock")
@require_auth
def low_stock_products_route():
    first, offset = page_args()
    return products_service.list_low_stock_products(g.actor, first, offset), 200


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    return products_service.get_product(g.actor, product_id).to_dict(), 200


@products_bp.post("")
@require_auth
def create_product_route():
    payload = normalize_price(json_body())
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    product = products_service.create_product(g.actor, patch)
    current_app.logger.info("Product created: id=%s sku=%s business_id=%s", product.id, product.sku, product.business_id)
    return product.to_dict(), 201


@products_bp.patch("/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    payload = normalize_price(json_body())
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    return products_service.update_product(g.actor, product_id, patch).to_dict(), 200


@products_bp.delete("/<int:product_id>")
@require_auth
def delete_product_route(product_id: int):
    return products_service.delete_product(g.actor, product_id), 200
