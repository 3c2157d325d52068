"""
Pytest fixtures for Kantin POS backend tests.

Provides an in-memory database shared by the test session (cleared before
each test), a test client, a logged-in cashier and the sample catalog.
"""

import pytest

from kantin import create_app
from kantin.extensions import db
from kantin.services import products_service
from kantin.services.auth_service import create_user


CASHIER_PASSWORD = "Kasir123!"

SAMPLE_PRODUCTS = [
    {"barcode_id": "BRK001", "nama_produk": "Aqua 600ml", "kategori": "Minuman",
     "stok": 100, "harga_modal": 2500, "harga_jual": 3000},
    {"barcode_id": "BRK002", "nama_produk": "Indomie Goreng", "kategori": "Makanan",
     "stok": 75, "harga_modal": 2800, "harga_jual": 3500},
    {"barcode_id": "BRK003", "nama_produk": "Pulpen", "kategori": "Alat Tulis",
     "stok": 50, "harga_modal": 1500, "harga_jual": 2000},
]


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        # Keep bcrypt fast in fixtures
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
def cashier(db_session):
    return create_user("kasir", CASHIER_PASSWORD, display_name="Bu Sari")


@pytest.fixture(scope='function')
def headers(client, cashier):
    token = get_auth_token(client, "kasir", CASHIER_PASSWORD)
    assert token
    return auth_headers(token)


@pytest.fixture(scope='function')
def products(db_session):
    """The three sample products, keyed by barcode."""
    created = {}
    for data in SAMPLE_PRODUCTS:
        p = products_service.create_product(patch=dict(data))
        created[p.barcode_id] = p
    return created


@pytest.fixture(scope='function')
def brk100(db_session):
    """Rp 4.000 item with 10 in stock (cost Rp 3.000)."""
    return products_service.create_product(patch={
        "barcode_id": "BRK100",
        "nama_produk": "Roti Coklat",
        "kategori": "Snack",
        "stok": 10,
        "harga_modal": 3000,
        "harga_jual": 4000,
    })


def get_auth_token(client, username: str, password: str) -> str:
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
