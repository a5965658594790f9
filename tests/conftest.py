"""
Global pytest configuration and fixtures for all tests.

This file provides fixtures available to all test modules.
"""

import os
import sys
from pathlib import Path

import pytest

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy.orm import Session  # noqa: E402

from launchpad.core.config import reset_config  # noqa: E402
from launchpad.core.database.database_session import get_engine, reset_engine  # noqa: E402
from launchpad.core.database.models import Base  # noqa: E402

_ENV_PREFIXES = ("META_", "GOOGLE_ADS_", "LAUNCH_", "NOTIFY_", "DATABASE_", "DB_")


@pytest.fixture(autouse=True)
def test_environment(monkeypatch):
    """Run every test against a clean environment and fresh configuration."""
    for key in list(os.environ):
        if key.startswith(_ENV_PREFIXES):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("PRODUCTION", raising=False)
    monkeypatch.setenv("ENVIRONMENT", "test")

    reset_config()
    yield
    reset_config()


@pytest.fixture
def sqlite_db(tmp_path, monkeypatch):
    """A temporary SQLite database with the full schema, shared by all threads."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'launchpad_test.db'}")
    reset_config()
    reset_engine()

    Base.metadata.create_all(get_engine())
    yield
    reset_engine()


@pytest.fixture
def db_session(sqlite_db):
    """Session for arranging test data, separate from the thread-scoped sessions the code under test uses."""
    session = Session(bind=get_engine(), expire_on_commit=False)
    try:
        yield session
    finally:
        session.close()
