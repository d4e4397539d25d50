"""
Pytest fixtures for back-office backend tests.

Provides test database setup, two-tenant fixtures, factories and test client.
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from backoffice import create_app
from backoffice.extensions import db
from backoffice.models import Company, User, Category, Product, Inventory, Customer, Order, Review
from backoffice.services import token_service
from backoffice.services.auth_service import hash_password, register_company


TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'JWT_SECRET': 'test-jwt-secret',
    'BCRYPT_ROUNDS': 4,
    'COOKIE_SECURE': False,
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client (fresh cookie jar per test)."""
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


# =============================================================================
# TENANTS
# =============================================================================


@pytest.fixture(scope='function')
def acme(db_session):
    """Company A: "Acme", owned by Alice (all flags true)."""
    company, owner = register_company(
        company_name="Acme",
        owner_name="Alice",
        owner_email="alice@acme.com",
        owner_password="secret1",
    )
    return company, owner


@pytest.fixture(scope='function')
def beta(db_session):
    """Company B: "Beta Inc", owned by Boris."""
    company, owner = register_company(
        company_name="Beta Inc",
        owner_name="Boris",
        owner_email="boris@beta.com",
        owner_password="secret1",
    )
    return company, owner


@pytest.fixture(scope='function')
def alice_headers(acme):
    company, owner = acme
    return headers_for(owner, company)


@pytest.fixture(scope='function')
def boris_headers(beta):
    company, owner = beta
    return headers_for(owner, company)


@pytest.fixture(scope='function')
def bob(db_session, acme):
    """Acme user without any permission flag."""
    company, _ = acme
    return make_user(db_session, company, name="Bob", email="bob@acme.com")


@pytest.fixture(scope='function')
def bob_headers(acme, bob):
    company, _ = acme
    return headers_for(bob, company)


@pytest.fixture(scope='function')
def customer(db_session):
    return make_customer(db_session, name="Jane Doe", region="EU")


@pytest.fixture(scope='function')
def widget(db_session, acme):
    """Acme product "Widget" (cost 10, price 15)."""
    company, owner = acme
    return make_product(db_session, company, owner, name="Widget")


@pytest.fixture(scope='function')
def gadget_b(db_session, beta):
    """Beta product "Gadget"."""
    company, owner = beta
    return make_product(db_session, company, owner, name="Gadget")


# =============================================================================
# FACTORIES / HELPERS
# =============================================================================


def make_user(session, company, *, name, email, password="secret1",
              manage_products=False, manage_inventory=False, manage_users=False):
    user = User(
        company_id=company.id,
        name=name,
        email=email,
        password_hash=hash_password(password),
        manage_products=manage_products,
        manage_inventory=manage_inventory,
        manage_users=manage_users,
    )
    session.add(user)
    session.commit()
    return user


def make_product(session, company, creator=None, **overrides):
    values = {
        "name": "Product",
        "cost_price": Decimal("10.00"),
        "selling_price": Decimal("15.00"),
        "image_urls": ["https://x/1.png"],
    }
    values.update(overrides)
    product = Product(
        company_id=company.id,
        created_by_user_id=creator.id if creator is not None else None,
        **values,
    )
    session.add(product)
    session.commit()
    return product


def make_inventory(session, product, in_stock):
    inv = Inventory(product_id=product.id, in_stock=in_stock)
    session.add(inv)
    session.commit()
    return inv


def make_customer(session, name="Customer", region=None):
    customer = Customer(name=name, region=region)
    session.add(customer)
    session.commit()
    return customer


def make_order(session, product, customer, *, in_inventory=False, delivered=False, created_at=None):
    order = Order(
        product_id=product.id,
        customer_id=customer.id,
        delivery_location="Somewhere 1",
        delivered=delivered,
        in_inventory=in_inventory,
    )
    if created_at is not None:
        order.created_at = created_at
    session.add(order)
    session.commit()
    return order


def make_review(session, product, customer, rating, feedback=None, created_at=None):
    review = Review(product_id=product.id, customer_id=customer.id, rating=rating, feedback=feedback)
    if created_at is not None:
        review.created_at = created_at
    session.add(review)
    session.commit()
    return review


def make_category(session, name, parent=None):
    category = Category(name=name, parent_id=parent.id if parent is not None else None)
    session.add(category)
    session.commit()
    return category


def days_ago(n: int) -> datetime:
    return datetime(2026, 1, 31, 12, 0, 0) - timedelta(days=n)


def headers_for(user, company) -> dict:
    """Issue a token for a user directly and wrap it as Authorization headers."""
    return auth_headers(token_service.issue_token(user, company))


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
