"""Fixtures shared by all test packages.

Each test gets a fresh DatabaseManager bound to a temp-file SQLite
database, so tests never see each other's rows.
"""
import os
import shutil
import tempfile

import pytest

from database import DatabaseManager
from tests.factories import make_customer, make_invoice, make_order, make_vehicle


@pytest.fixture
def temp_db():
    """Yield a fresh DatabaseManager bound to a temp SQLite database."""
    temp_dir = tempfile.mkdtemp(prefix="db-tests-")
    db_path = os.path.join(temp_dir, "test.db")
    manager = DatabaseManager(database_url=f"sqlite:///{db_path}")
    manager.create_tables()

    try:
        yield manager
    finally:
        manager.close()
        shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def sample_customer(temp_db):
    return make_customer(temp_db)


@pytest.fixture
def sample_vehicle(temp_db, sample_customer):
    return make_vehicle(temp_db, sample_customer["id"])


@pytest.fixture
def sample_order(temp_db, sample_vehicle):
    return make_order(temp_db, sample_vehicle["id"])


@pytest.fixture
def sample_invoice(temp_db):
    """Invoice with total_due=100 and no payments."""
    return make_invoice(temp_db, total_due=100)
