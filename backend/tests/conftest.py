"""Shared test configuration.

Settings are read from the environment when abexp is first imported, so the
test database and token are set here, before any test module imports it.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTH_TOKEN", "test-token-123")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest


@pytest.fixture
def db():
    """Create test database session."""
    from abexp.database import SessionLocal, engine, Base, init_db

    # Create tables
    init_db()

    # Create session
    session = SessionLocal()

    yield session

    # Cleanup
    session.close()
    Base.metadata.drop_all(bind=engine)
