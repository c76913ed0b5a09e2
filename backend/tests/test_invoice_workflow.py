"""
Invoice workflow tests.

Every invoice operation is one transaction: stock deductions, invoice and
sale rows and activity entries land together or not at all.
"""

import pytest

from invoicehub.errors import (
    BusinessRequired,
    InsufficientStock,
    InvalidReference,
    NotFound,
    Unauthorized,
    ValidationError,
)
from invoicehub.models import ActivityLog, Invoice, Product, Sale
from invoicehub.services import invoice_service
from invoicehub.time_utils import utcnow


def _quantity(db_session, product_id):
    db_session.expire_all()
    return db_session.get(Product, product_id).quantity


def _line(product, quantity, price="10.00"):
    return {"product_id": product.id, "quantity": quantity, "price": price}


@pytest.fixture
def invoice_a(actor_a, customer_a, product_a):
    """Pending invoice: 2 x product_a at 10.00."""
    return invoice_service.create_invoice(actor_a, customer_a.id, [_line(product_a, 2)])


class TestCreateInvoice:

    def test_create_deducts_stock_and_pairs_sale(self, db_session, actor_a, customer_a, product_a):
        invoice = invoice_service.create_invoice(actor_a, customer_a.id, [_line(product_a, 2)])

        assert invoice.status == "pending"
        assert invoice.total_cents == 2000
        assert [(i.product_id, i.quantity, i.price_cents) for i in invoice.items] == [(product_a.id, 2, 1000)]
        assert _quantity(db_session, product_a.id) == 8

        sale = db_session.query(Sale).filter_by(invoice_id=invoice.id).one()
        assert sale.total_cents == 2000
        assert sale.customer_id == customer_a.id
        assert sale.business_id == invoice.business_id

    def test_total_is_sum_of_lines(self, db_session, actor_a, customer_a, product_a, product_a2):
        invoice = invoice_service.create_invoice(actor_a, customer_a.id, [
            _line(product_a, 3, "9.99"),
            {"product_id": product_a2.id, "quantity": 2, "price_cents": 250},
        ])
        assert invoice.total_cents == 3 * 999 + 2 * 250
        assert invoice.to_dict()["total"] == "34.97"
        assert [i.position for i in invoice.items] == [0, 1]

    def test_line_price_is_independent_of_catalog(self, db_session, actor_a, customer_a, product_a):
        invoice = invoice_service.create_invoice(actor_a, customer_a.id, [_line(product_a, 1, "7.5")])
        assert invoice.items[0].price_cents == 750
        assert db_session.get(Product, product_a.id).price_cents == 1000

    def test_create_audits_invoice_and_sale(self, db_session, actor_a, customer_a, product_a):
        invoice = invoice_service.create_invoice(actor_a, customer_a.id, [_line(product_a, 2)])

        actions = {
            (e.entity_name, e.action)
            for e in db_session.query(ActivityLog).filter(ActivityLog.entity_name.in_(["Invoice", "Sale"]))
        }
        assert actions == {("Invoice", "create"), ("Sale", "create")}

        stock = db_session.query(ActivityLog).filter_by(entity_name="Product", entity_id=product_a.id, action="update").one()
        assert stock.description.startswith("Invoice creation:")
        assert invoice.id is not None

    def test_insufficient_stock_creates_nothing(self, db_session, actor_a, customer_a, product_a):
        with pytest.raises(InsufficientStock) as exc_info:
            invoice_service.create_invoice(actor_a, customer_a.id, [_line(product_a, 11)])

        assert exc_info.value.details["items"][0]["on_hand"] == 10
        assert _quantity(db_session, product_a.id) == 10
        assert db_session.query(Invoice).count() == 0
        assert db_session.query(Sale).count() == 0
        assert db_session.query(ActivityLog).filter_by(entity_name="Invoice").count() == 0

    def test_stock_is_checked_across_lines_of_same_product(self, db_session, actor_a, customer_a, product_a):
        with pytest.raises(InsufficientStock):
            invoice_service.create_invoice(actor_a, customer_a.id, [_line(product_a, 6), _line(product_a, 6)])
        assert _quantity(db_session, product_a.id) == 10

    def test_one_short_line_rolls_back_the_others(self, db_session, actor_a, customer_a, product_a, product_a2):
        with pytest.raises(InsufficientStock):
            invoice_service.create_invoice(actor_a, customer_a.id, [_line(product_a, 2), _line(product_a2, 6)])
        assert _quantity(db_session, product_a.id) == 10
        assert _quantity(db_session, product_a2.id) == 5

    def test_empty_items_rejected(self, db_session, actor_a, customer_a):
        with pytest.raises(ValidationError):
            invoice_service.create_invoice(actor_a, customer_a.id, [])

    @pytest.mark.parametrize("line", [
        {"quantity": 1, "price": "1.00"},
        {"product_id": 1, "price": "1.00"},
        {"product_id": 1, "quantity": 0, "price": "1.00"},
        {"product_id": 1, "quantity": 1},
        {"product_id": 1, "quantity": 1, "price": "1.005"},
        {"product_id": 1, "quantity": 1.5, "price": "1.00"},
    ])
    def test_malformed_line_rejected(self, db_session, actor_a, customer_a, line):
        with pytest.raises(ValidationError):
            invoice_service.create_invoice(actor_a, customer_a.id, [line])

    def test_unknown_product_is_invalid_reference(self, db_session, actor_a, customer_a):
        with pytest.raises(InvalidReference):
            invoice_service.create_invoice(actor_a, customer_a.id, [{"product_id": 999999, "quantity": 1, "price": "1.00"}])

    def test_foreign_product_is_invalid_reference(self, db_session, actor_a, customer_a, product_b):
        with pytest.raises(InvalidReference):
            invoice_service.create_invoice(actor_a, customer_a.id, [_line(product_b, 1)])
        assert _quantity(db_session, product_b.id) == 20

    def test_foreign_customer_is_invalid_reference(self, db_session, actor_a, customer_b, product_a):
        with pytest.raises(InvalidReference):
            invoice_service.create_invoice(actor_a, customer_b.id, [_line(product_a, 1)])

    def test_platform_has_no_business_to_invoice_in(self, db_session, platform_actor, customer_a, product_a):
        with pytest.raises(BusinessRequired):
            invoice_service.create_invoice(platform_actor, customer_a.id, [_line(product_a, 1)])


class TestUpdateInvoice:

    def test_increase_quantity_deducts_difference(self, db_session, actor_a, invoice_a, product_a):
        invoice = invoice_service.update_invoice(actor_a, invoice_a.id, items=[_line(product_a, 5)])
        assert invoice.total_cents == 5000
        assert _quantity(db_session, product_a.id) == 5

    def test_decrease_quantity_restocks_difference(self, db_session, actor_a, invoice_a, product_a):
        invoice_service.update_invoice(actor_a, invoice_a.id, items=[_line(product_a, 1)])
        assert _quantity(db_session, product_a.id) == 9

    def test_unchanged_quantity_moves_no_stock(self, db_session, actor_a, invoice_a, product_a):
        invoice = invoice_service.update_invoice(actor_a, invoice_a.id, items=[_line(product_a, 2, "12.00")])
        assert invoice.total_cents == 2400
        assert _quantity(db_session, product_a.id) == 8

    def test_swapping_products_restocks_removed_one(self, db_session, actor_a, invoice_a, product_a, product_a2):
        invoice_service.update_invoice(actor_a, invoice_a.id, items=[_line(product_a2, 3, "2.50")])

        assert _quantity(db_session, product_a.id) == 10
        assert _quantity(db_session, product_a2.id) == 2
        removed = db_session.query(ActivityLog).filter(
            ActivityLog.entity_id == product_a.id,
            ActivityLog.description.like("Invoice update (product removed)%"),
        ).count()
        assert removed == 1

    def test_failed_update_rolls_back_every_adjustment(self, db_session, actor_a, invoice_a, product_a, product_a2):
        before = db_session.query(ActivityLog).count()

        with pytest.raises(InsufficientStock):
            invoice_service.update_invoice(
                actor_a, invoice_a.id, items=[_line(product_a, 4), _line(product_a2, 99)]
            )

        assert _quantity(db_session, product_a.id) == 8
        assert _quantity(db_session, product_a2.id) == 5
        invoice = db_session.get(Invoice, invoice_a.id)
        assert invoice.total_cents == 2000
        assert [(i.product_id, i.quantity) for i in invoice.items] == [(product_a.id, 2)]
        assert db_session.query(ActivityLog).count() == before

    def test_items_can_use_stock_the_invoice_already_holds(self, db_session, actor_a, customer_a, product_a):
        invoice = invoice_service.create_invoice(actor_a, customer_a.id, [_line(product_a, 10)])
        assert _quantity(db_session, product_a.id) == 0

        invoice_service.update_invoice(actor_a, invoice.id, items=[_line(product_a, 10, "11.00")])
        assert _quantity(db_session, product_a.id) == 0

    def test_repeated_old_lines_are_summed(self, db_session, actor_a, customer_a, product_a):
        invoice = invoice_service.create_invoice(
            actor_a, customer_a.id, [_line(product_a, 3), _line(product_a, 3)]
        )
        assert _quantity(db_session, product_a.id) == 4

        with pytest.raises(InsufficientStock):
            invoice_service.update_invoice(actor_a, invoice.id, items=[_line(product_a, 11)])
        assert _quantity(db_session, product_a.id) == 4

        invoice_service.update_invoice(actor_a, invoice.id, items=[_line(product_a, 10)])
        assert _quantity(db_session, product_a.id) == 0

    def test_sale_total_follows_invoice(self, db_session, actor_a, invoice_a, product_a):
        invoice_service.update_invoice(actor_a, invoice_a.id, items=[_line(product_a, 3)])

        sale = db_session.query(Sale).filter_by(invoice_id=invoice_a.id).one()
        assert sale.total_cents == 3000
        assert db_session.query(ActivityLog).filter_by(entity_name="Sale", action="update").count() == 1

    def test_customer_change_follows_to_sale(self, db_session, actor_a, invoice_a, customer_a2):
        invoice = invoice_service.update_invoice(actor_a, invoice_a.id, customer_id=customer_a2.id)

        assert invoice.customer_id == customer_a2.id
        sale = db_session.query(Sale).filter_by(invoice_id=invoice_a.id).one()
        assert sale.customer_id == customer_a2.id

        entry = db_session.query(ActivityLog).filter_by(entity_name="Invoice", action="update").one()
        assert 'customer from "Alice Buyer" to "Bob Buyer"' in entry.description

    def test_cancelling_does_not_restock(self, db_session, actor_a, invoice_a, product_a):
        invoice = invoice_service.update_invoice(actor_a, invoice_a.id, status="cancelled")
        assert invoice.status == "cancelled"
        assert _quantity(db_session, product_a.id) == 8

    def test_unknown_status_rejected(self, db_session, actor_a, invoice_a):
        with pytest.raises(ValidationError):
            invoice_service.update_invoice(actor_a, invoice_a.id, status="refunded")

    def test_foreign_actor_refused(self, db_session, actor_b, invoice_a):
        with pytest.raises(Unauthorized):
            invoice_service.update_invoice(actor_b, invoice_a.id, status="paid")

    def test_unknown_invoice(self, db_session, actor_a):
        with pytest.raises(NotFound):
            invoice_service.update_invoice(actor_a, 999999, status="paid")

    def test_unknown_status_on_foreign_invoice_is_refused(self, db_session, actor_b, invoice_a):
        with pytest.raises(Unauthorized):
            invoice_service.update_invoice(actor_b, invoice_a.id, status="refunded")

    def test_unknown_status_on_missing_invoice_is_not_found(self, db_session, actor_a):
        with pytest.raises(NotFound):
            invoice_service.update_invoice(actor_a, 999999, status="refunded")


class TestDeleteInvoice:

    def test_delete_restocks_and_removes_sale(self, db_session, actor_a, invoice_a, product_a):
        invoice_id = invoice_a.id
        deleted = invoice_service.delete_invoice(actor_a, invoice_id)

        assert deleted["id"] == invoice_id
        assert deleted["total_cents"] == 2000
        assert _quantity(db_session, product_a.id) == 10
        assert db_session.get(Invoice, invoice_id) is None
        assert db_session.query(Sale).filter_by(invoice_id=invoice_id).count() == 0

        actions = {
            (e.entity_name, e.action)
            for e in db_session.query(ActivityLog).filter(ActivityLog.action == "delete")
        }
        assert actions == {("Invoice", "delete"), ("Sale", "delete")}

    def test_delete_cancelled_invoice_still_restocks(self, db_session, actor_a, invoice_a, product_a):
        invoice_service.update_invoice(actor_a, invoice_a.id, status="cancelled")
        invoice_service.delete_invoice(actor_a, invoice_a.id)
        assert _quantity(db_session, product_a.id) == 10

    def test_delete_sale_deletes_invoice(self, db_session, actor_a, invoice_a, product_a):
        invoice_id = invoice_a.id
        sale_id = db_session.query(Sale.id).filter_by(invoice_id=invoice_id).scalar()

        deleted = invoice_service.delete_sale(actor_a, sale_id)

        assert deleted["id"] == sale_id
        assert deleted["invoice_id"] == invoice_id
        assert db_session.get(Invoice, invoice_id) is None
        assert _quantity(db_session, product_a.id) == 10

    def test_foreign_actor_cannot_delete(self, db_session, actor_b, invoice_a, product_a):
        with pytest.raises(Unauthorized):
            invoice_service.delete_invoice(actor_b, invoice_a.id)
        assert _quantity(db_session, product_a.id) == 8


class TestSalesReport:

    def test_report_includes_sales_in_range(self, db_session, actor_a, invoice_a):
        today = utcnow().date().isoformat()
        report = invoice_service.sales_report(actor_a, today, today)

        assert report["count"] == 1
        assert report["total_cents"] == 2000
        assert report["total"] == "20.00"
        assert report["sales"][0]["invoice_id"] == invoice_a.id

    def test_report_excludes_sales_outside_range(self, db_session, actor_a, invoice_a):
        report = invoice_service.sales_report(actor_a, "2000-01-01", "2000-12-31")
        assert report["count"] == 0
        assert report["total_cents"] == 0

    def test_report_is_scoped_to_business(self, db_session, actor_b, invoice_a):
        today = utcnow().date().isoformat()
        assert invoice_service.sales_report(actor_b, today, today)["count"] == 0

    @pytest.mark.parametrize("start,end", [
        (None, "2026-01-01"),
        ("2026-01-01", ""),
        ("not-a-date", "2026-01-01"),
        ("2026-02-01", "2026-01-01"),
    ])
    def test_invalid_bounds(self, db_session, actor_a, start, end):
        with pytest.raises(ValidationError):
            invoice_service.sales_report(actor_a, start, end)
