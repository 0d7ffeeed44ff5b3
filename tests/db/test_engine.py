"""Tests for admissions/db/engine.py - Database engine and session management."""

import contextlib

from admissions.db.engine import create_db_engine, get_session


def test_get_session():
    """Test get_session() yields a database session."""
    gen = get_session()
    session = next(gen)

    # Verify we got a session object
    assert session is not None

    # Clean up - complete the generator
    with contextlib.suppress(StopIteration):
        next(gen)


def test_create_db_engine_sqlite():
    """Test SQLite engines allow cross-thread use."""
    engine = create_db_engine("sqlite://")

    assert engine.dialect.name == "sqlite"
    assert engine.pool._pre_ping is True
