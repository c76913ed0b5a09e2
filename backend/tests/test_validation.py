"""Input normalization tests: money, integers, invoice lines, payload policy."""

import pytest

from invoicehub.errors import ValidationError
from invoicehub.models import Product
from invoicehub.money import MAX_PRICE_CENTS, format_cents, to_cents
from invoicehub.validation import (
    PRODUCT_POLICY,
    coerce_int,
    normalize_price,
    validate_invoice_items,
    validate_payload,
)


class TestMoney:

    @pytest.mark.parametrize("value,cents", [
        ("10.00", 1000),
        ("10.5", 1050),
        (10, 1000),
        (0.1, 10),
        ("0", 0),
        (" 7.25 ", 725),
    ])
    def test_to_cents(self, value, cents):
        assert to_cents(value) == cents

    @pytest.mark.parametrize("value", ["1.001", "-0.01", "ten", "", None, True, "NaN", "Infinity"])
    def test_to_cents_rejects(self, value):
        with pytest.raises(ValidationError):
            to_cents(value)

    def test_to_cents_upper_bound(self):
        assert to_cents("9999999.99") == MAX_PRICE_CENTS
        with pytest.raises(ValidationError):
            to_cents("10000000.00")

    @pytest.mark.parametrize("cents,text", [(0, "0.00"), (5, "0.05"), (1999, "19.99"), (-250, "-2.50"), (None, None)])
    def test_format_cents(self, cents, text):
        assert format_cents(cents) == text


class TestCoerceInt:

    @pytest.mark.parametrize("value,expected", [(3, 3), ("42", 42), (" 7 ", 7), ("-1", -1)])
    def test_accepts(self, value, expected):
        assert coerce_int(value, "n") == expected

    @pytest.mark.parametrize("value", [True, 1.0, "1.0", "1e3", "", "abc", None, [1]])
    def test_rejects(self, value):
        with pytest.raises(ValidationError):
            coerce_int(value, "n")


class TestInvoiceItems:

    def test_normalizes_lines_in_order(self):
        lines = validate_invoice_items([
            {"product_id": "4", "quantity": 2, "price": "1.50"},
            {"product_id": 9, "quantity": "1", "price_cents": 99},
        ])
        assert lines == [
            {"position": 0, "product_id": 4, "quantity": 2, "price_cents": 150},
            {"position": 1, "product_id": 9, "quantity": 1, "price_cents": 99},
        ]

    @pytest.mark.parametrize("items", [
        None,
        [],
        "items",
        ["not-an-object"],
        [{"product_id": 1, "quantity": -1, "price": "1"}],
        [{"product_id": 1, "quantity": 1, "price": "1", "price_cents": 100}],
        [{"product_id": 1, "quantity": 1, "price_cents": MAX_PRICE_CENTS + 1}],
        [{"product_id": 1, "quantity": 1, "price": "1", "discount": "0.5"}],
    ])
    def test_rejects(self, items):
        with pytest.raises(ValidationError):
            validate_invoice_items(items)


class TestPayloadPolicy:

    def test_normalize_price(self):
        assert normalize_price({"price": "3.10", "name": "x"}) == {"price_cents": 310, "name": "x"}
        assert normalize_price({"name": "x"}) == {"name": "x"}

    def test_partial_allows_subset(self, app):
        patch = validate_payload(model=Product, payload={"name": "  Pliers  "}, policy=PRODUCT_POLICY, partial=True)
        assert patch == {"name": "Pliers"}

    def test_create_requires_fields(self, app):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(model=Product, payload={"name": "Pliers"}, policy=PRODUCT_POLICY, partial=False)
        assert "brand" in exc_info.value.message

    @pytest.mark.parametrize("payload", [
        {"low_stock_alert": True},
        {"business_id": 2},
        {"quantity": None},
        {"name": {"nested": 1}},
    ])
    def test_rejects(self, app, payload):
        with pytest.raises(ValidationError):
            validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
