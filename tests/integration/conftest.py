"""Pytest fixtures for integration tests.

This module provides shared fixtures for integration testing the vote API.
API tests drive the FastAPI app in-process through httpx; Redis tests need
a reachable Redis server and are skipped otherwise.
"""

import os
import random
from typing import AsyncGenerator, Dict, List

import httpx
import pytest
import redis.asyncio as redis

from services.shared.models import get_redis_key
from services.vote_api.ledger import MemoryLedger, RedisLedger
from services.vote_api.main import app, get_ledger, limiter


@pytest.fixture
def ledger() -> MemoryLedger:
    """Fresh in-memory ledger for each test."""
    return MemoryLedger()


@pytest.fixture
async def api_client(ledger) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client bound to the app with the test ledger injected.

    Rate limiting is disabled so test volume never trips the limiter.
    """
    app.dependency_overrides[get_ledger] = lambda: ledger
    limiter.enabled = False

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test", timeout=10.0) as client:
        yield client

    app.dependency_overrides.clear()
    limiter.enabled = True


@pytest.fixture
def session_id() -> int:
    """Random session id so tests never share tallies."""
    return random.randint(1_000, 1_000_000)


@pytest.fixture
def sample_vote_single(session_id) -> Dict:
    """Single sample vote for simple tests."""
    return {
        "sessionId": session_id,
        "index": 0,
        "address": "0x5BCAEf9a3059340f39e640875fE803422b5100C8"
    }


@pytest.fixture
def sample_votes(session_id) -> List[Dict]:
    """Votes {idx=0} x2 and {idx=1} x1 from distinct addresses."""
    return [
        {"sessionId": session_id, "index": 0, "address": "0x" + "a1" * 20},
        {"sessionId": session_id, "index": 0, "address": "0x" + "b2" * 20},
        {"sessionId": session_id, "index": 1, "address": "0x" + "c3" * 20},
    ]


@pytest.fixture
def invalid_votes() -> List[Dict]:
    """Vote payloads missing or mangling required fields."""
    return [
        {"index": 0, "address": "0xabc"},                      # Missing sessionId
        {"sessionId": 1, "address": "0xabc"},                  # Missing index
        {"sessionId": 1, "index": 0},                          # Missing address
        {"sessionId": 1, "index": 0, "address": ""},           # Empty address
        {"sessionId": "abc", "index": 0, "address": "0xabc"},  # Non-numeric sessionId
        {"sessionId": 1, "index": "first", "address": "0xabc"},
    ]


@pytest.fixture
async def redis_client() -> AsyncGenerator[redis.Redis, None]:
    """Redis client for direct operations; skips the test when Redis is down."""
    client = redis.Redis(
        host=os.getenv("REDIS_HOST", "localhost"),
        port=int(os.getenv("REDIS_PORT", "6379")),
        db=int(os.getenv("REDIS_DB", "0")),
        decode_responses=True
    )

    try:
        await client.ping()
    except (redis.ConnectionError, OSError):
        await client.aclose()
        pytest.skip("Redis not available")

    yield client

    await client.aclose()


@pytest.fixture
async def redis_ledger(redis_client, session_id) -> AsyncGenerator[RedisLedger, None]:
    """Redis-backed ledger sharing the test client; cleans its session keys."""
    instance = RedisLedger(redis_url="", client=redis_client)
    await instance.initialize()

    yield instance

    await redis_client.delete(
        get_redis_key('voters', session_id),
        get_redis_key('counts', session_id),
        get_redis_key('events', session_id),
    )
    await redis_client.srem(get_redis_key('sessions'), session_id)
