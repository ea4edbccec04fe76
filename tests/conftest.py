from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from flashdeck.sm17.memory_state import ItemState


@pytest.fixture
def now():
    return datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def base_state():
    return ItemState(last_interval_days=1.0, stability=1.0, difficulty=0.5, lapses=0)


@pytest.fixture
def collection():
    """Stand-in for a pymongo Collection; every update matches one document."""
    coll = MagicMock()
    coll.update_one.return_value = MagicMock(matched_count=1)
    return coll
