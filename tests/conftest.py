"""
Pytest configuration and fixtures
"""

import json
from datetime import datetime, timezone

import pytest

from schemas.source import SourceConfig, SourceMode
from tests.fakes import make_table

# Far enough in the future that no trigger fires during a test
NEVER_SCHEDULE = "0 0 1 1 *"

FIXED_NOW = datetime(2024, 1, 20, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def credentials_file(tmp_path):
    """Readable service-account file"""
    path = tmp_path / "service-account.json"
    path.write_text(json.dumps({"type": "service_account", "client_email": "collector@example.com"}))
    return str(path)


@pytest.fixture
def make_source(credentials_file):
    """Build a SourceConfig with sensible defaults"""

    def _make(name: str = "realtime_users", **overrides) -> SourceConfig:
        values = {
            "name": name,
            "ids": ["ga:1234"],
            "metrics": ["rt:activeUsers"],
            "dimensions": ["rt:country"],
            "mode": SourceMode.REALTIME,
            "schedule": NEVER_SCHEDULE,
            "document_type": "gabeat",
            "tags": ["web"],
            "credentials_file": credentials_file,
        }
        values.update(overrides)
        return SourceConfig(**values)

    return _make


@pytest.fixture
def realtime_table():
    """Realtime answer: one dimension column, metric last"""
    return make_table(
        ["rt:country", "rt:activeUsers"],
        [["US", "10"], ["FR", "3"]]
    )


@pytest.fixture
def ranged_table():
    """Ranged answer: date and page dimensions, two metrics"""
    return make_table(
        ["ga:date", "ga:pagePath", "ga:pageviews", "ga:sessions"],
        [
            ["20230115", "/home", "42", "7"],
            ["20230116", "/pricing", "13", "5"],
        ]
    )


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW
