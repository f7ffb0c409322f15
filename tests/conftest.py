"""
PyTest Configuration and Fixtures
=================================

Shared fixtures for FeedSentry tests: a deterministic clock, in-memory
storage and temporary SQLite databases. Test doubles and sample feed
documents live in ``tests.helpers``. No test touches the network.
"""

import os
import sys
from pathlib import Path

import pytest

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before any imports
os.environ["FEEDSENTRY_DEBUG"] = "true"
os.environ["FEEDSENTRY_LOGGING__CONSOLE_LOGGING"] = "false"

from tests.helpers import FakeClock


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def clock():
    """Deterministic clock whose sleeps return immediately."""
    return FakeClock()


@pytest.fixture
def parking_clock():
    """Clock that parks timer-length sleeps so loops stay idle."""
    return FakeClock(park_at=60)


@pytest.fixture
def memory_store():
    from feedsentry.storage.memory import MemoryArticleStore

    return MemoryArticleStore()


@pytest.fixture
def memory_registry():
    from feedsentry.storage.memory import MemorySourceRegistry

    return MemorySourceRegistry()


@pytest.fixture
def temp_db_path(tmp_path):
    """Path of a fresh SQLite database with the schema applied."""
    from feedsentry.database.schema import DatabaseSchema

    db_path = tmp_path / "feedsentry_test.db"
    DatabaseSchema(str(db_path)).create_tables()
    return str(db_path)


@pytest.fixture
def db_connection(temp_db_path):
    """Pooled connection manager for the temporary database."""
    from feedsentry.database.connection import DatabaseConnection

    connection = DatabaseConnection(temp_db_path, pool_size=2)
    yield connection
    connection.close_all_connections()


@pytest.fixture
def test_settings(tmp_path):
    """Settings isolated from the developer's environment and files."""
    from feedsentry.config.settings import FeedSentrySettings

    settings = FeedSentrySettings()
    settings.database.path = str(tmp_path / "service.db")
    settings.logging.file_path = None
    return settings
