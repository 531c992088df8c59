"""
Shared pytest fixtures for upgrade tests.

Fixtures provided:
- db_engine: Temporary SQLite database with the platform tables
- db_conn: Connection inside a transaction, rolled back after the test
- seed: Helper that inserts rows into a table through db_conn
"""

import pytest


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (run a full upgrade against a database)")


import tempfile
import os
import logging
from sqlalchemy import create_engine, event, insert

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from database import Base

logger = logging.getLogger(__name__)


@pytest.fixture(scope="function")
def db_engine():
    """
    Create a temporary SQLite database engine for testing.

    Tables are created from the models in their 4.4.2 shape, including the
    duplicated async_job_join_map foreign key.
    """
    db_fd, db_path = tempfile.mkstemp(suffix='.db')
    engine = create_engine(f'sqlite:///{db_path}')

    # Enable foreign key constraints in SQLite
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)

    yield engine

    engine.dispose()
    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def db_conn(db_engine):
    """
    Connection with an open transaction, like the one an upgrade step receives.

    Rolled back after the test so tests don't affect each other.
    """
    conn = db_engine.connect()
    trans = conn.begin()

    yield conn

    if trans.is_active:
        trans.rollback()
    conn.close()


@pytest.fixture
def seed(db_conn):
    """
    Insert rows into a model's table.

    Usage: seed(VmTemplate, name='systemvm-kvm-4.5', type='USER')
    Returns the primary key of the inserted row.
    """
    def _seed(model, **values):
        result = db_conn.execute(insert(model.__table__).values(**values))
        return result.inserted_primary_key[0]

    return _seed
