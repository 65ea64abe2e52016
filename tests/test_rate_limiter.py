import asyncio

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from anantam_api import rate_limiter


class FakeRedis:
    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def ttl(self, key):
        return 60 if key in self.store else -2

    def set(self, key, value, ex=None):
        self.store[key] = str(value)


@pytest.fixture(autouse=True)
def _clear_cache():
    rate_limiter.memory_cache.clear()
    yield
    rate_limiter.memory_cache.clear()


def make_request(ip="10.0.0.1", forwarded=None):
    headers = [(b"x-forwarded-for", forwarded.encode())] if forwarded else []
    return Request({"type": "http", "method": "POST", "path": "/contact", "headers": headers, "client": (ip, 5000)})


def test_requests_over_the_limit_are_denied():
    client = FakeRedis()

    results = [rate_limiter.check_rate_limit("contact:1.2.3.4", 2, 60, client)[0] for _ in range(3)]

    assert results == [True, True, False]


def test_counts_are_written_through_to_redis(monkeypatch):
    monkeypatch.setattr(rate_limiter, "MEMORY_CACHE_SYNC_INTERVAL", 0)
    client = FakeRedis()
    rate_limiter.check_rate_limit("contact:1.2.3.4", 5, 60, client)
    assert client.store["contact:1.2.3.4"] == "1"


def test_existing_redis_window_is_resumed():
    client = FakeRedis()
    client.store["contact:1.2.3.4"] = "5"

    allowed, count, _ = rate_limiter.check_rate_limit("contact:1.2.3.4", 5, 60, client)

    assert allowed is False
    assert count == 5


def test_client_ip_prefers_forwarded_header():
    assert rate_limiter.client_ip(make_request(forwarded="203.0.113.9, 10.0.0.1")) == "203.0.113.9"
    assert rate_limiter.client_ip(make_request()) == "10.0.0.1"


def test_dependency_raises_429_when_exhausted(monkeypatch):
    monkeypatch.setattr(rate_limiter, "get_redis_client", lambda: FakeRedis())
    limiter = rate_limiter.create_rate_limiter(limit=1, window_seconds=60, key_prefix="test")

    asyncio.run(limiter(make_request()))
    with pytest.raises(HTTPException) as exc:
        asyncio.run(limiter(make_request()))

    assert exc.value.status_code == 429


def test_dependency_fails_closed_without_redis(monkeypatch):
    def unavailable():
        raise ConnectionError("redis down")

    monkeypatch.setattr(rate_limiter, "get_redis_client", unavailable)
    limiter = rate_limiter.create_rate_limiter(limit=10, window_seconds=60, key_prefix="test")

    with pytest.raises(HTTPException) as exc:
        asyncio.run(limiter(make_request()))

    assert exc.value.status_code == 503
