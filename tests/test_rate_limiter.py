import asyncio

import pytest
import redis
from fastapi import HTTPException
from starlette.requests import Request

from studiodesk import rate_limiter


class FakePipeline:
    def __init__(self, counts):
        self.counts = counts
        self.key = None

    def incr(self, key):
        self.key = key

    def expire(self, key, seconds):
        pass

    def execute(self):
        self.counts[self.key] = self.counts.get(self.key, 0) + 1
        return [self.counts[self.key], True]


class FakeRedis:
    def __init__(self):
        self.counts = {}

    def pipeline(self):
        return FakePipeline(self.counts)


def make_request(ip="203.0.113.7"):
    return Request({"type": "http", "headers": [], "client": (ip, 1234)})


def limit(request, calls=2):
    return asyncio.run(rate_limiter.rate_limit_dependency(request, calls, 60, "test"))


@pytest.fixture
def enabled(monkeypatch):
    monkeypatch.setattr(rate_limiter, "RATE_LIMIT_ENABLED", True)


def test_requests_over_the_limit_get_429(enabled, monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(rate_limiter, "get_redis_client", lambda: fake)

    limit(make_request())
    limit(make_request())
    with pytest.raises(HTTPException) as exc:
        limit(make_request())
    assert exc.value.status_code == 429
    assert "Retry-After" in exc.value.headers

    limit(make_request(ip="198.51.100.1"))


def test_unreachable_redis_fails_closed(enabled, monkeypatch):
    def unreachable():
        raise redis.ConnectionError("connection refused")

    monkeypatch.setattr(rate_limiter, "get_redis_client", unreachable)
    with pytest.raises(HTTPException) as exc:
        limit(make_request())
    assert exc.value.status_code == 503


def test_disabled_limiter_never_touches_redis(monkeypatch):
    def unreachable():
        raise AssertionError("redis should not be used")

    monkeypatch.setattr(rate_limiter, "RATE_LIMIT_ENABLED", False)
    monkeypatch.setattr(rate_limiter, "get_redis_client", unreachable)
    assert limit(make_request()) is None
