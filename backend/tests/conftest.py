"""
Pytest fixtures for TarpPrint backend tests.

Provides test database setup, catalog seed data, users per role and test client.
"""

import pytest
from tarpprint import create_app
from tarpprint.extensions import db
from tarpprint.models import Material, Template, User
from tarpprint.services.auth_service import hash_password
from tarpprint.services import catalog_service
from tarpprint.time_utils import utcnow


TEST_PASSWORD = "Password123"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'UPLOAD_FOLDER': str(tmp_path_factory.mktemp('uploads')),
        'MAX_UPLOAD_BYTES': 1024 * 1024,
        'PAYMENT_SIMULATION_DELAY_SECONDS': 0,
        'LOG_LEVEL': 'WARNING',
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

        # Per-test config tweaks must not leak
        saved = {
            key: app.config.get(key)
            for key in ('ORDER_STATUS_POLICY', 'IDENTITY_PROVIDER_INSTANCE')
        }

        yield db.session

        # Cleanup after test
        db.session.rollback()
        app.config.update(saved)


def _make_user(session, email, name, role, password=TEST_PASSWORD, **extra):
    now = utcnow()
    user = User(
        email=email,
        name=name,
        role=role,
        password_hash=hash_password(password),
        auth_provider="local",
        created_at=now,
        updated_at=now,
        **extra,
    )
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def customer(db_session):
    """Create a customer account."""
    return _make_user(db_session, "juan@example.com", "Juan Dela Cruz", "customer", phone="09171234567")


@pytest.fixture(scope='function')
def other_customer(db_session):
    """Create a second customer (for ownership checks)."""
    return _make_user(db_session, "maria@example.com", "Maria Santos", "customer")


@pytest.fixture(scope='function')
def staff(db_session):
    """Create a staff account."""
    return _make_user(db_session, "staff@tarpprint.local", "Print Staff", "staff")


@pytest.fixture(scope='function')
def admin(db_session):
    """Create an admin account."""
    return _make_user(db_session, "admin@tarpprint.local", "Administrator", "admin")


@pytest.fixture(scope='function')
def catalog(db_session):
    """Seed default materials and templates; returns a lookup by name."""
    catalog_service.seed_catalog()
    materials = {m.name: m for m in db_session.query(Material).all()}
    templates = {t.name: t for t in db_session.query(Template).all()}
    return {"materials": materials, "templates": templates}


@pytest.fixture(scope='function')
def standard_vinyl(catalog):
    return catalog["materials"]["Standard Vinyl"]


@pytest.fixture(scope='function')
def mesh_vinyl(catalog):
    return catalog["materials"]["Mesh Vinyl"]


def get_auth_token(client, email: str, password: str = TEST_PASSWORD) -> str:
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
def customer_headers(client, customer):
    return auth_headers(get_auth_token(client, customer.email))


@pytest.fixture(scope='function')
def other_customer_headers(client, other_customer):
    return auth_headers(get_auth_token(client, other_customer.email))


@pytest.fixture(scope='function')
def staff_headers(client, staff):
    return auth_headers(get_auth_token(client, staff.email))


@pytest.fixture(scope='function')
def admin_headers(client, admin):
    return auth_headers(get_auth_token(client, admin.email))


def order_payload(material, **overrides) -> dict:
    """Minimal valid order body for a material."""
    payload = {
        'width': 2,
        'height': 1.5,
        'quantity': 3,
        'material_id': material.id,
        'payment_method': 'gcash',
    }
    payload.update(overrides)
    return payload
