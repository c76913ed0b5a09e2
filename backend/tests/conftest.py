"""
Pytest fixtures for InvoiceHub backend tests.

Provides the test database, two tenants (business_a / business_b) with
their accounts, catalog fixtures and a test client.
"""

import pytest

from invoicehub import create_app
from invoicehub.config import TestingConfig
from invoicehub.extensions import db
from invoicehub.services.auth_service import create_user
from invoicehub.services.authorization import Actor
from invoicehub.services.business_service import create_business
from invoicehub.services.customers_service import create_customer
from invoicehub.services.products_service import create_product

PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestingConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def actor_for(user) -> Actor:
    """Actor exactly as a session for this user would carry it."""
    return Actor(user_id=user.id, username=user.username, role=user.role, business_id=user.business_id)


def _make_user(db_session, username, role, business_id=None):
    user = create_user(username=username, password=PASSWORD, role=role, business_id=business_id)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def platform_user(db_session):
    return _make_user(db_session, "platform", "platform")


@pytest.fixture(scope='function')
def platform_actor(platform_user):
    return actor_for(platform_user)


@pytest.fixture(scope='function')
def business_a(db_session, platform_actor):
    """Business A (first tenant)."""
    return create_business(platform_actor, {"name": "Acme Hardware", "address": "1 Main St", "phone": "555-0100"})


@pytest.fixture(scope='function')
def business_b(db_session, platform_actor, business_a):
    """Business B (second tenant); created after A so bids are 1 and 2."""
    return create_business(platform_actor, {"name": "Beta Books", "address": "9 Side Rd", "phone": "555-0199"})


@pytest.fixture(scope='function')
def admin_a(db_session, business_a):
    return _make_user(db_session, "admin_a", "admin", business_a.id)


@pytest.fixture(scope='function')
def user_a(db_session, business_a):
    return _make_user(db_session, "user_a", "user", business_a.id)


@pytest.fixture(scope='function')
def admin_b(db_session, business_b):
    return _make_user(db_session, "admin_b", "admin", business_b.id)


@pytest.fixture(scope='function')
def actor_a(admin_a):
    return actor_for(admin_a)


@pytest.fixture(scope='function')
def actor_b(admin_b):
    return actor_for(admin_b)


@pytest.fixture(scope='function')
def product_a(actor_a):
    """10 on hand, threshold 3, 10.00 each."""
    return create_product(actor_a, {
        "name": "Claw Hammer", "brand": "Stanley", "sku": "HAM-001",
        "quantity": 10, "price_cents": 1000, "low_stock_amount": 3,
    })


@pytest.fixture(scope='function')
def product_a2(actor_a):
    """5 on hand, threshold 1, 2.50 each."""
    return create_product(actor_a, {
        "name": "Wood Screws", "brand": "Spax", "sku": "SCR-010",
        "quantity": 5, "price_cents": 250, "low_stock_amount": 1,
    })


@pytest.fixture(scope='function')
def product_b(actor_b):
    return create_product(actor_b, {
        "name": "Notebook", "brand": "Moleskine", "sku": "NB-001",
        "quantity": 20, "price_cents": 1500, "low_stock_amount": 2,
    })


@pytest.fixture(scope='function')
def customer_a(actor_a):
    return create_customer(actor_a, {"name": "Alice Buyer", "email": "alice@example.com", "phone": "555-1000"})


@pytest.fixture(scope='function')
def customer_a2(actor_a):
    return create_customer(actor_a, {"name": "Bob Buyer", "email": "bob@example.com"})


@pytest.fixture(scope='function')
def customer_b(actor_b):
    return create_customer(actor_b, {"name": "Carol Reader", "email": "carol@example.com"})


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def platform_headers(client, platform_user):
    return auth_headers(get_auth_token(client, "platform"))


@pytest.fixture(scope='function')
def admin_a_headers(client, admin_a):
    return auth_headers(get_auth_token(client, "admin_a"))


@pytest.fixture(scope='function')
def user_a_headers(client, user_a):
    return auth_headers(get_auth_token(client, "user_a"))


@pytest.fixture(scope='function')
def admin_b_headers(client, admin_b):
    return auth_headers(get_auth_token(client, "admin_b"))
