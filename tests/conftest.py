"""Pytest configuration shared by unit and integration tests.

The API settings object is built at import time, so the in-memory ledger
is selected here before any test module imports the application.
"""

import os

import pytest

os.environ.setdefault("LEDGER_BACKEND", "memory")

from services.shared.models import Vote  # noqa: E402


@pytest.fixture
def make_vote():
    """Helper fixture to build Vote objects with sensible defaults."""
    def _make(index: int, address: str, timestamp: int = 1_700_000_000, session_id: int = 1) -> Vote:
        return Vote(
            session_id=session_id,
            voter_address=address,
            chosen_index=index,
            timestamp=timestamp
        )

    return _make


@pytest.fixture
def addresses():
    """Ten distinct lowercase wallet addresses."""
    return [f"0x{i:040x}" for i in range(1, 11)]


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers",
        "redis: mark test as requiring a reachable Redis server"
    )
    config.addinivalue_line(
        "markers",
        "api: mark test as exercising the HTTP API"
    )
