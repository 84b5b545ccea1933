"""
Pytest fixtures for storefront backend tests.

Provides the in-memory database, a clean business hours gate per test,
and the test client.
"""

import os

import pytest
from app import create_app
from app.extensions import db


@pytest.fixture(scope='session')
def fallback_path(tmp_path_factory):
    return str(tmp_path_factory.mktemp("business_hours") / "fallback.json")


@pytest.fixture(scope='session')
def app(fallback_path):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BUSINESS_HOURS_FALLBACK_PATH': fallback_path,
        'OPERATING_TIMEZONE': 'Asia/Jakarta',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app, fallback_path):
    """Create fresh database (and a cold business hours gate) for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        app.extensions.pop("business_hours", None)
        if os.path.exists(fallback_path):
            os.remove(fallback_path)

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def ledger_row():
    """Factory for a valid add_transaction payload with overrides."""
    def _make(**overrides) -> dict:
        payload = {
            "transaction_date": "2026-10-01T08:00:00Z",
            "transaction_type": "incoming",
            "quantity_kg": 100,
            "source_destination": "Supplier Arang Jaya",
            "created_by": "admin-1",
        }
        payload.update(overrides)
        return payload
    return _make
