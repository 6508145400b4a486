"""
Pytest fixtures for the wholesale backend tests.

Provides an in-memory database, admin/shop principals, a small catalog,
and token helpers for the Flask test client.
"""

import pytest
from wholesale import create_app
from wholesale.extensions import db
from wholesale.models import Account, Product, Shop
from wholesale.models.shops import SHOP_STATUS_APPROVED
from wholesale.services.auth_service import create_admin_user, hash_password


ADMIN_EMAIL = "owner@wholesale.test"
ADMIN_PASSWORD = "owner123"
SHOP_PASSWORD = "shop123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
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


@pytest.fixture(scope='function')
def admin_user(db_session):
    return create_admin_user(ADMIN_EMAIL, "Owner", ADMIN_PASSWORD, role="owner")


@pytest.fixture(scope='function')
def make_shop(db_session):
    """Factory: shop (and account, if new) with the given status."""
    def _make(
        name="Lakshmi Stores",
        email="lakshmi@shops.test",
        status=SHOP_STATUS_APPROVED,
        credit_limit_paise=0,
    ):
        account = db_session.query(Account).filter_by(email=email).first()
        if account is None:
            account = Account(email=email, password_hash=hash_password(SHOP_PASSWORD))
            db_session.add(account)
            db_session.flush()
        shop = Shop(
            account_id=account.id,
            shop_name=name,
            owner_name="Ravi",
            mobile="9876543210",
            street="12 Gandhi Road",
            area="T Nagar",
            city="Chennai",
            status=status,
            credit_limit_paise=credit_limit_paise,
            pending_balance_paise=0,
        )
        db_session.add(shop)
        db_session.commit()
        return shop
    return _make


@pytest.fixture(scope='function')
def shop(make_shop):
    """Approved shop."""
    return make_shop()


@pytest.fixture(scope='function')
def products(db_session):
    """Two active products at Rs 100 and Rs 50, and one inactive."""
    rows = {
        "mixture": Product(name="Sweet Mixture", category="mixture", rate_paise=10000, unit_type="kg"),
        "bhel": Product(name="Karam Bhel", category="bhel", rate_paise=5000, unit_type="kg"),
        "retired": Product(name="Old Chips", category="chips", rate_paise=9000, unit_type="packet", is_active=False),
    }
    db_session.add_all(rows.values())
    db_session.commit()
    return rows


def get_auth_token(client, email: str, password: str) -> str:
    """Helper to get auth token for an admin or shop login."""
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
    return auth_headers(get_auth_token(client, ADMIN_EMAIL, ADMIN_PASSWORD))


@pytest.fixture(scope='function')
def shop_headers(client, shop):
    return auth_headers(get_auth_token(client, "lakshmi@shops.test", SHOP_PASSWORD))
