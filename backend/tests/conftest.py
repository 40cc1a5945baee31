"""
Pytest fixtures for payables backend tests.

Provides test database setup, users of both roles, and test client.
"""

from datetime import date

import pytest
from payables import create_app
from payables.config import TestConfig
from payables.extensions import db
from payables.models import Entity, Receivable, EmployeeBalanceTransaction, User
from payables.services.auth_service import hash_password


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(config_object=TestConfig)

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


def _make_user(db_session, username: str, role: str, full_name: str) -> User:
    user = User(
        username=username,
        email=f"{username}@payables.test",
        full_name=full_name,
        role=role,
        password_hash=hash_password(PASSWORD, rounds=4),
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session):
    return _make_user(db_session, "admin", "admin", "Admin User")


@pytest.fixture(scope='function')
def employee(db_session):
    return _make_user(db_session, "sara", "user", "Sara Employee")


@pytest.fixture(scope='function')
def supplier(db_session):
    entity = Entity(name="Gulf Trading", type="supplier", address="Riyadh", phone="0500000000")
    db_session.add(entity)
    db_session.commit()
    return entity


@pytest.fixture(scope='function')
def two_receivables(db_session, supplier):
    """300 due 2024-01-01 and 200 due 2024-02-01."""
    first = Receivable(
        entity_id=supplier.id, description="January invoice",
        total_cents=30000, remaining_cents=30000, due_date=date(2024, 1, 1),
    )
    second = Receivable(
        entity_id=supplier.id, description="February invoice",
        total_cents=20000, remaining_cents=20000, due_date=date(2024, 2, 1),
    )
    db_session.add_all([first, second])
    db_session.commit()
    return first, second


def give_custody(db_session, user: User, amount_cents: int, reason: str = "Float") -> EmployeeBalanceTransaction:
    tx = EmployeeBalanceTransaction(user_id=user.id, amount_cents=amount_cents, reason=reason)
    db_session.add(tx)
    db_session.commit()
    return tx


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
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


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.username))


@pytest.fixture(scope='function')
def employee_headers(client, employee):
    return auth_headers(get_auth_token(client, employee.username))
