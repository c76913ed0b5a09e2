"""Query-string and body helpers shared by the route modules."""

from flask import request

from ..errors import ValidationError
from ..validation import coerce_int


def json_body() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def int_arg(name: str) -> int | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    return coerce_int(raw, name)


def page_args() -> tuple[int | None, int | None]:
    """first/offset pagination parameters."""
    return int_arg("first"), int_arg("offset")
