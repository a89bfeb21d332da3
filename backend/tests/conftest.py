"""
Pytest fixtures for payout console tests.

Provides an in-memory database, the Flask test client, one user per role,
and a small catalog (two brands, a few items).
"""

from datetime import timedelta, timezone

import pytest
from payout_console import create_app
from payout_console.extensions import db
from payout_console.models.auth import ROLE_ADMIN, ROLE_MANAGER, ROLE_SALES
from payout_console.services import catalog_service
from payout_console.services.auth_service import create_user

PASSWORD = "Password123!"
ADMIN_EMAIL = "admin@test.local"
MANAGER_EMAIL = "manager@test.local"
SALES_EMAIL = "sales@test.local"

IST = timezone(timedelta(hours=5, minutes=30))


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'REPORT_TIMEZONE': 'UTC',
        'DEFAULT_STORE_LABEL': 'Main Store',
        'CURRENCY_SYMBOL': '₹',
        'SELLER_NAME': 'Street Junkies India',
        'EMAIL_API_URL': 'https://email.test/emails',
        'EMAIL_API_KEY': 'test-key',
        'EMAIL_SENDER': 'Payouts <payouts@test.local>',
        'EMAIL_TIMEOUT_SECONDS': 2,
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


@pytest.fixture
def ist():
    return IST


@pytest.fixture(scope='function')
def admin_user(db_session):
    return create_user(ADMIN_EMAIL, PASSWORD, role=ROLE_ADMIN)


@pytest.fixture(scope='function')
def manager_user(db_session):
    return create_user(MANAGER_EMAIL, PASSWORD, role=ROLE_MANAGER)


@pytest.fixture(scope='function')
def sales_user(db_session):
    return create_user(SALES_EMAIL, PASSWORD, role=ROLE_SALES)


@pytest.fixture(scope='function')
def nike(db_session):
    """Nike at 20% commission, with a contact email."""
    return catalog_service.create_brand({
        "name": "Nike",
        "contact_email": "payouts@nike.example",
        "partnership_type": "EXCLUSIVE",
        "commission_rate_percent": "20",
    })


@pytest.fixture(scope='function')
def adidas(db_session):
    """Adidas at 15% commission, no contact email."""
    return catalog_service.create_brand({
        "name": "Adidas",
        "commission_rate_bps": 1500,
    })


def make_item(brand, name="Air Max", size="UK 9", price=50000, stock=None):
    return catalog_service.add_inventory_item(
        {
            "brand_id": brand.id,
            "name": name,
            "size": size,
            "unit_price_cents": price,
            "stock_count": stock,
        },
        default_store_label="Main Store",
    )


@pytest.fixture(scope='function')
def nike_item(nike):
    """Rs 500.00 Nike item with 3 in stock."""
    return make_item(nike, price=50000, stock=3)


@pytest.fixture(scope='function')
def adidas_item(adidas):
    return make_item(adidas, name="Samba", size="UK 8", price=20000)


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


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, ADMIN_EMAIL))


@pytest.fixture(scope='function')
def manager_headers(client, manager_user):
    return auth_headers(get_auth_token(client, MANAGER_EMAIL))


@pytest.fixture(scope='function')
def sales_headers(client, sales_user):
    return auth_headers(get_auth_token(client, SALES_EMAIL))
