"""
Pytest fixtures for StockAI backend tests.

Provides an in-memory database, seeded access control, user/product
factories, auth helpers and the in-process payment gateway.
"""

import pytest
from stockai import create_app
from stockai.extensions import db
from stockai.models import User, Product, Inventory, Order, Sale
from stockai.services.auth_service import hash_password
from stockai.services import permission_service, session_service
from stockai.formats import amount_to_cents


TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'PAYMENT_GATEWAY': 'memory',
        'CLIENT_URL': 'http://testclient.local',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='session')
def password_hash():
    """One bcrypt hash shared by every test user (cost 12 is slow)."""
    return hash_password(TEST_PASSWORD)


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture(scope='function')
def gateway(app):
    """The app's in-process payment gateway, emptied for each test."""
    gw = app.extensions["payment_gateway"]
    gw.sessions.clear()
    return gw


@pytest.fixture(scope='function')
def setup_roles(db_session):
    """Seed modules, built-in roles and default role module grants."""
    permission_service.ensure_modules()
    permission_service.ensure_system_roles()
    permission_service.assign_default_role_modules()
    db_session.commit()


@pytest.fixture(scope='function')
def make_user(db_session, setup_roles, password_hash):
    """Factory: make_user("alice", role="user", status="active")."""
    def _make(name, role="user", status="active", email=None):
        user = User(
            name=name,
            email=email or f"{name}@stockai.test",
            password_hash=password_hash,
            role=role,
            status=status,
            hobbies=[],
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product("Widget", price="10.00", quantity=5, product_id=7)."""
    def _make(name, price="10.00", quantity=0, product_id=None, owner=None, sku=None, threshold=10):
        product = Product(
            id=product_id,
            name=name,
            sku=sku,
            price_cents=amount_to_cents(price),
            status="active",
            owner_id=owner.id if owner else None,
        )
        product.inventory = Inventory(quantity=quantity, low_stock_threshold=threshold)
        db_session.add(product)
        db_session.commit()
        return product
    return _make


def auth_headers(token):
    """Helper to create authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def auth_for(db_session):
    """Factory: auth_for(user) -> request headers with a fresh session token."""
    def _auth(user):
        _, token = session_service.create_session(user.id)
        return auth_headers(token)
    return _auth


@pytest.fixture(scope='function')
def login(client):
    """Factory: login("alice") -> response of POST /api/auth/login."""
    def _login(username, password=TEST_PASSWORD):
        return client.post('/api/auth/login', json={'username': username, 'password': password})
    return _login


@pytest.fixture(scope='function')
def stock_of(db_session):
    """Factory: stock_of(product_id) -> current inventory quantity (fresh read)."""
    def _stock(product_id):
        db_session.expire_all()
        inv = db_session.query(Inventory).filter_by(product_id=product_id).first()
        return inv.quantity if inv else None
    return _stock


@pytest.fixture(scope='function')
def table_counts(db_session):
    """Factory: table_counts() -> {"orders", "sales", "inventory"} row counts."""

    def _counts():
        db_session.expire_all()
        return {
            "orders": db_session.query(Order).count(),
            "sales": db_session.query(Sale).count(),
            "inventory": db_session.query(Inventory).count(),
        }
    return _counts
