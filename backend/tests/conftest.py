"""
Pytest fixtures for tillpoint backend tests.

Provides an in-memory application, per-test table wipe, and factories for
products, users and session contexts.
"""

import pytest
from sqlalchemy import select

from tillpoint import create_app
from tillpoint.extensions import db
from tillpoint.models import Product, User, ROLE_ADMIN, ROLE_CASHIER
from tillpoint.services.auth_service import hash_password
from tillpoint.services.session_service import SessionContext, create_session


TEST_PASSWORD = "Password123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'CHECKOUT_RETRY_BACKOFF': 0.0,
        'TRANSACTION_WORKERS': 2,
    })

    with app.app_context():
        db.create_all()
        yield app
        app.extensions["tillpoint.worker"].shutdown()
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
        app.extensions["tillpoint.carts"].reset()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture
def make_product(db_session):
    """Factory: make_product(name, price_cents, stock, barcode=None)."""
    counter = {"n": 0}

    def _make(name="Product", price_cents=1000, stock=10, barcode=None, category=None):
        counter["n"] += 1
        product = Product(
            barcode=barcode or f"BC-{counter['n']:04d}",
            name=name,
            price_cents=price_cents,
            stock=stock,
            category=category,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


def _make_user(db_session, username, role):
    user = User(
        username=username,
        full_name=username.title(),
        password_hash=hash_password(TEST_PASSWORD, rounds=4),
        role=role,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def cashier(db_session):
    return _make_user(db_session, "cashier", ROLE_CASHIER)


@pytest.fixture
def admin(db_session):
    return _make_user(db_session, "admin", ROLE_ADMIN)


@pytest.fixture
def cashier_ctx(cashier):
    return SessionContext.for_user(cashier, session_id=1)


@pytest.fixture
def admin_ctx(admin):
    return SessionContext.for_user(admin, session_id=2)


@pytest.fixture
def stock_of(db_session):
    """Factory: stock_of(product_id) reads stock straight from the table."""
    def _stock(product_id: int) -> int:
        return db_session.execute(
            select(Product.stock).where(Product.id == product_id)
        ).scalar_one()
    return _stock


@pytest.fixture
def auth_headers(db_session):
    """Factory: auth_headers(user) -> Authorization header dict."""
    def _headers(user):
        _, token = create_session(user.id)
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def cashier_headers(cashier, auth_headers):
    return auth_headers(cashier)


@pytest.fixture
def admin_headers(admin, auth_headers):
    return auth_headers(admin)
