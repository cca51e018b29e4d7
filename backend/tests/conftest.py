"""
Pytest fixtures for mercado backend tests.

Provides test database setup, users with tokens, a small catalog and a
test client.
"""

import pytest
from decimal import Decimal

from mercado import create_app
from mercado.extensions import db
from mercado.models import Product, User
from mercado.models.auth import ROLE_ADMIN, ROLE_CUSTOMER, ROLE_EMPLOYEE, ROLE_MANAGER
from mercado.services import session_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'DEBUG',
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


def _make_user(db_session, username, role, first_name=None, last_name=None):
    user = User(
        username=username,
        email=f"{username}@mercado.test",
        first_name=first_name,
        last_name=last_name,
        role=role,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin(db_session):
    return _make_user(db_session, "admin", ROLE_ADMIN, "Ada", "Admin")


@pytest.fixture(scope='function')
def manager(db_session):
    return _make_user(db_session, "manager", ROLE_MANAGER, "Mia", "Manager")


@pytest.fixture(scope='function')
def employee(db_session):
    return _make_user(db_session, "employee", ROLE_EMPLOYEE, "Eva", "Cajera")


@pytest.fixture(scope='function')
def other_employee(db_session):
    return _make_user(db_session, "employee2", ROLE_EMPLOYEE, "Luis", "Caja")


@pytest.fixture(scope='function')
def customer(db_session):
    return _make_user(db_session, "customer", ROLE_CUSTOMER, "Carla", "Cliente")


def _make_product(db_session, code, name, price, stock, discount="0", category="dairy"):
    product = Product(
        code=code,
        name=name,
        price=Decimal(price),
        cost=Decimal(price) / 2,
        stock=stock,
        category=category,
        discount=Decimal(discount),
        is_active=True,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product_a(db_session):
    """Milk, 1200 per unit, plenty of stock."""
    return _make_product(db_session, "LAC-001", "Leche entera", "1200", 50)


@pytest.fixture(scope='function')
def product_b(db_session):
    """Bread, 950 per unit, plenty of stock."""
    return _make_product(db_session, "PAN-001", "Pan de molde", "950", 40, category="bakery")


@pytest.fixture(scope='function')
def product_c(db_session):
    """Cheese with only 5 units left."""
    return _make_product(db_session, "LAC-002", "Queso fresco", "3000", 5)


@pytest.fixture(scope='function')
def discounted_product(db_session):
    """Detergent with a 10% catalog discount."""
    return _make_product(db_session, "LIM-001", "Detergente", "2000", 20, discount="10", category="cleaning")


def issue_token(user) -> str:
    """Helper to get a bearer token for a user."""
    _, token = session_service.create_session(user.id)
    return token


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(admin):
    return auth_headers(issue_token(admin))


@pytest.fixture(scope='function')
def manager_headers(manager):
    return auth_headers(issue_token(manager))


@pytest.fixture(scope='function')
def employee_headers(employee):
    return auth_headers(issue_token(employee))


@pytest.fixture(scope='function')
def other_employee_headers(other_employee):
    return auth_headers(issue_token(other_employee))
