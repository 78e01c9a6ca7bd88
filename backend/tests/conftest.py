"""
Pytest fixtures for storefront backend tests.

Provides test database setup, role-specific users, catalog factories and a
test client.
"""

import pytest

from storefront import create_app
from storefront.config import TestConfig
from storefront.extensions import db
from storefront.models import Cart, CartItem, PaymentMethod, Product, User
from storefront.permissions import Role
from storefront.services import session_service
from storefront.services.auth_service import hash_password


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='session')
def password_hash(app):
    """bcrypt is deliberately slow; hash the shared test password once."""
    return hash_password(PASSWORD)


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


# =============================================================================
# FACTORIES
# =============================================================================

@pytest.fixture(scope='function')
def make_user(db_session, password_hash):
    """Create a user of any role. Customers get an empty cart like registration does."""
    counter = {"n": 0}

    def _make(role=Role.CUSTOMER, name=None, email=None, **fields):
        counter["n"] += 1
        role_value = Role(role).value
        user = User(
            name=name or f"{role_value.title()} {counter['n']}",
            email=email or f"{role_value}{counter['n']}@example.com",
            password_hash=password_hash,
            role=role_value,
            **fields
        )
        db_session.add(user)
        db_session.flush()
        if role_value == Role.CUSTOMER.value:
            db_session.add(Cart(user_id=user.id))
        db_session.commit()
        return user

    return _make


@pytest.fixture(scope='function')
def make_product(db_session):
    counter = {"n": 0}

    def _make(**fields):
        counter["n"] += 1
        defaults = {
            "name": f"Product {counter['n']}",
            "price_cents": 1000,
            "quantity": 100,
            "low_stock_threshold": 10,
        }
        defaults.update(fields)
        product = Product(**defaults)
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def add_to_cart(db_session):
    def _add(user, product, quantity):
        cart = Cart.query.filter_by(user_id=user.id).first()
        db_session.add(CartItem(cart_id=cart.id, product_id=product.id, quantity=quantity))
        db_session.commit()
        db_session.expire(cart, ["items"])
        return cart

    return _add


@pytest.fixture(scope='function')
def payment_method(db_session):
    method = PaymentMethod(name="Credit Card", description="Card payment", type="card", is_active=True)
    db_session.add(method)
    db_session.commit()
    return method


@pytest.fixture(scope='function')
def admin(make_user):
    return make_user(Role.ADMIN, name="Admin", email="admin@example.com")


@pytest.fixture(scope='function')
def staff(make_user):
    return make_user(Role.STAFF, name="Staff", email="staff@example.com", employee_id="EMP-001")


@pytest.fixture(scope='function')
def warehouse_manager(make_user):
    return make_user(Role.WAREHOUSE_MANAGER, name="Warehouse", email="warehouse@example.com")


@pytest.fixture(scope='function')
def customer(make_user):
    return make_user(Role.CUSTOMER, name="Customer", email="customer@example.com")


# =============================================================================
# AUTH HEADERS
# =============================================================================

@pytest.fixture(scope='function')
def admin_headers(admin):
    return auth_headers(token_for(admin))


@pytest.fixture(scope='function')
def staff_headers(staff):
    return auth_headers(token_for(staff))


@pytest.fixture(scope='function')
def warehouse_headers(warehouse_manager):
    return auth_headers(token_for(warehouse_manager))


@pytest.fixture(scope='function')
def customer_headers(customer):
    return auth_headers(token_for(customer))


def token_for(user) -> str:
    """Open a session directly, skipping the password check."""
    _, token = session_service.create_session(user.id)
    return token


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
