# engagement_dashboard/conftest.py
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add repo root to PYTHONPATH
REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture
def fixed_now():
    """Fixed timestamp for deterministic testing."""
    return datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_record(fixed_now):
    """Factory for EngagementRecord with sensible defaults."""
    from engagement_dashboard.models.engagement import EngagementRecord

    def _make(id=1, type="view", source="web", score=50.0, user_id="user_0001", timestamp=None, days_ago=0):
        return EngagementRecord(
            id=id,
            type=type,
            source=source,
            timestamp=timestamp or fixed_now - timedelta(days=days_ago),
            user_id=user_id,
            score=score,
        )

    return _make


@pytest.fixture
def app():
    """Fresh app per test so the upload slot never leaks between tests."""
    from engagement_dashboard.main import create_app

    return create_app()


@pytest.fixture
def client(app):
    return TestClient(app)
