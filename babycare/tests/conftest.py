"""
Shared fixtures. Every test gets its own SQLite file so stores never share state.
"""

import os

os.environ.setdefault("LOG_TO_FILE", "false")

import pytest

from babycare.core.timezone import TimezoneNormalizer
from babycare.db.store import StoreEngine
from babycare.services.session import CareSession


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path}/test.db"


@pytest.fixture
def second_database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path}/restore.db"


@pytest.fixture
def store(database_url):
    """An uninitialized store engine; tests initialize it inside their own event loop."""
    return StoreEngine(database_url)


@pytest.fixture
def session(database_url):
    store = StoreEngine(database_url)
    return CareSession(store=store, normalizer=TimezoneNormalizer(preferences=store, default_timezone="Asia/Taipei"))
