from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .money import MAX_PRICE_CENTS, to_cents


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "brand", "sku", "quantity", "price_cents", "low_stock_amount"},
    required_on_create={"name", "brand", "sku", "quantity", "price_cents"},
)

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "address"},
    required_on_create={"name", "email"},
)

BUSINESS_POLICY = ModelValidationPolicy(
    writable_fields={"name", "address", "phone", "type"},
    required_on_create={"name"},
)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(value: Any, field: str) -> int:
    """Strict integer coercion: rejects bools, floats, decimals and scientific notation."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, col.key)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be a boolean")

    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{col.key} must be a string")
        return str(value).strip()

    return value


def normalize_price(payload: dict) -> dict:
    """
    Accept a decimal "price" (e.g. "10.50" or 10.5) in place of price_cents.

    Returns a copy of the payload with "price" converted to "price_cents".
    """
    if not isinstance(payload, dict) or "price" not in payload:
        return payload
    if "price_cents" in payload:
        raise ValidationError("Provide either price or price_cents, not both")
    data = dict(payload)
    data["price_cents"] = to_cents(data.pop("price"))
    return data


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if patch.get("quantity") is not None and patch["quantity"] < 0:
        raise ValidationError("quantity must be >= 0")
    if patch.get("low_stock_amount") is not None and patch["low_stock_amount"] < 0:
        raise ValidationError("low_stock_amount must be >= 0")
    if patch.get("price_cents") is not None:
        price = patch["price_cents"]
        if price < 0:
            raise ValidationError("price_cents must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"price_cents cannot exceed {MAX_PRICE_CENTS} (${MAX_PRICE_CENTS / 100:,.2f})")


def enforce_rules_customer(patch: dict) -> None:
    email = patch.get("email")
    if email is not None:
        local, sep, domain = email.partition("@")
        if not sep or not local or "." not in domain:
            raise ValidationError("email must be a valid email address")
        patch["email"] = email.lower()


def enforce_rules_business(patch: dict) -> None:
    from .models.tenancy import BUSINESS_TYPES

    if patch.get("type") is not None and patch["type"] not in BUSINESS_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(BUSINESS_TYPES)}")


def validate_invoice_items(items: Any) -> list[dict]:
    """
    Validate invoice lines before any product is resolved.

    Each line needs product_id, an integer quantity > 0 and a price (decimal
    with at most two places, or price_cents). Returns normalized lines
    {position, product_id, quantity, price_cents} in input order.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    lines = []
    for index, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")

        unknown = set(raw) - {"product_id", "quantity", "price", "price_cents"}
        if unknown:
            raise ValidationError(f"items[{index}]: field not allowed: {', '.join(sorted(unknown))}")

        if raw.get("product_id") is None:
            raise ValidationError(f"items[{index}].product_id is required")
        product_id = coerce_int(raw["product_id"], f"items[{index}].product_id")

        if raw.get("quantity") is None:
            raise ValidationError(f"items[{index}].quantity is required")
        quantity = coerce_int(raw["quantity"], f"items[{index}].quantity")
        if quantity <= 0:
            raise ValidationError(f"items[{index}].quantity must be > 0")

        if "price" in raw and "price_cents" in raw:
            raise ValidationError(f"items[{index}]: provide either price or price_cents, not both")
        if raw.get("price_cents") is not None:
            price_cents = coerce_int(raw["price_cents"], f"items[{index}].price_cents")
            if price_cents < 0 or price_cents > MAX_PRICE_CENTS:
                raise ValidationError(f"items[{index}].price_cents must be between 0 and {MAX_PRICE_CENTS}")
        elif "price" in raw:
            price_cents = to_cents(raw["price"], field=f"items[{index}].price")
        else:
            raise ValidationError(f"items[{index}].price is required")

        lines.append({
            "position": index,
            "product_id": product_id,
            "quantity": quantity,
            "price_cents": price_cents,
        })

    return lines
