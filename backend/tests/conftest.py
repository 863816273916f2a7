"""
Pytest fixtures for StallOps backend tests.

Provides the app (in-memory SQLite), test client, a clean database per test
and actor identity headers.
"""

import pytest

from stallops import create_app
from stallops.domain.actors import Actor
from stallops.extensions import db


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'PAYROLL_ROUND_OFF_STEP': 10,
        'DEFAULT_OWNER_SHARE_PERCENTAGE': 70,
        'NEAR_EXPIRY_ALERT_DAYS': 7,
        'BUSINESS_TIMEZONE': 'UTC',
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


def actor_headers(user_id: str = "u-admin", user_name: str = "Asha Admin", role: str = "admin") -> dict:
    """Helper to create identity headers as set by the auth gateway."""
    return {
        'X-Actor-Id': user_id,
        'X-Actor-Name': user_name,
        'X-Actor-Role': role,
    }


@pytest.fixture(scope='function')
def admin_headers(db_session):
    return actor_headers()


@pytest.fixture(scope='function')
def staff_headers(db_session):
    return actor_headers(user_id="u-staff", user_name="Sam Staff", role="staff")


@pytest.fixture
def admin():
    return Actor(user_id="u-admin", user_name="Asha Admin", user_role="admin")


@pytest.fixture
def manager():
    return Actor(user_id="u-manager", user_name="Manu Manager", user_role="manager")


@pytest.fixture(scope='function')
def manager_headers(db_session):
    return actor_headers(user_id="u-manager", user_name="Manu Manager", role="manager")


@pytest.fixture(scope='function')
def accountant_headers(db_session):
    return actor_headers(user_id="u-acc", user_name="Anil Accounts", role="accountant")


@pytest.fixture(scope='function')
def cashier_headers(db_session):
    return actor_headers(user_id="u-cashier", user_name="Chitra Cashier", role="cashier")
