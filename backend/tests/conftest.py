"""
Pytest fixtures for Listo backend tests.

Provides the app (in-memory SQLite), test client, per-test clean database,
an admin user with bearer headers, a product factory and a recording
stand-in for the order e-mail notifier.
"""

from decimal import Decimal

import pytest

from app import create_app
from app.extensions import db
from app.models import Product, ProductVariant, User
from app.services.auth_service import hash_password
from app.services import token_service

ADMIN_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'JWT_SECRET': 'test-secret',
        'BCRYPT_ROUNDS': 4,
        'FEATURE_VARIANTS': True,
        'FEATURE_VISIBILITY_FLAGS': True,
        'RESEND_API_KEY': '',
        'COMPANY_ORDERS_EMAIL': 'orders@listo.test',
        'ADMIN_BOOTSTRAP_TOKEN': None,
    })

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


class RecordingNotifier:
    """Stands in for OrderNotifier; keeps the orders it was asked about."""

    def __init__(self):
        self.orders = []
        self.fail = False

    def send_new_order_emails(self, order):
        self.orders.append(order.id)
        if self.fail:
            raise RuntimeError("mail provider down")
        return []


@pytest.fixture(scope='function')
def notifier(app, monkeypatch):
    fake = RecordingNotifier()
    monkeypatch.setitem(app.extensions, "order_notifier", fake)
    return fake


@pytest.fixture(scope='function')
def admin_user(db_session):
    """Create an ADMIN user."""
    user = User(
        email="admin@listo.test",
        name="Admin",
        role="ADMIN",
        password_hash=hash_password(ADMIN_PASSWORD),
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def staff_user(db_session):
    """Create a non-admin user."""
    user = User(
        email="staff@listo.test",
        name="Staff",
        role="STAFF",
        password_hash=hash_password(ADMIN_PASSWORD),
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return auth_headers(token_service.issue_token(admin_user))


@pytest.fixture(scope='function')
def staff_headers(staff_user):
    return auth_headers(token_service.issue_token(staff_user))


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(name="...", price="10.00", stock=10, **columns)."""
    counter = {"n": 0}

    def _make(name=None, price="10.00", stock=10, **columns):
        counter["n"] += 1
        name = name or f"Product {counter['n']}"
        product = Product(
            name=name,
            slug=name.lower().replace(" ", "-"),
            description=columns.pop("description", f"{name} description"),
            price=Decimal(price),
            stock=stock,
            **columns,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def make_variant(db_session):
    def _make(product, name="5 L", price="25.00", stock=5, **columns):
        variant = ProductVariant(
            product_id=product.id,
            name=name,
            price=Decimal(price),
            stock=stock,
            images=[],
            **columns,
        )
        db_session.add(variant)
        db_session.commit()
        return variant

    return _make


def get_auth_token(client, email: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
