"""Unit tests for the Redis token bucket rate limiter."""
from unittest.mock import MagicMock

import pytest
import redis
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.requests import Request

from homecare.config import get_settings
from homecare.core.security import create_access_token
from homecare.middleware.rate_limit import BucketPolicy, RateLimitMiddleware

pytestmark = pytest.mark.unit


class FakePipeline:
    def __init__(self, store):
        self.store = store
        self.queued = []

    def get(self, key):
        return self.store.get(key)

    def multi(self):
        pass

    def setex(self, key, ttl, value):
        self.queued.append((key, str(value)))


class FakeRedis:
    """
    Just enough of redis.Redis for the limiter.

    transaction() follows WATCH semantics: if a watched key changes
    between the callable's reads and EXEC, the queued writes are dropped
    and the callable runs again. ``before_exec`` lets a test slip a
    concurrent write into that gap once.
    """

    def __init__(self):
        self.store = {}
        self.attempts = 0
        self.before_exec = None

    def ping(self):
        return True

    def transaction(self, func, *watches, value_from_callable=False):
        while True:
            self.attempts += 1
            watched = {key: self.store.get(key) for key in watches}
            pipe = FakePipeline(self.store)
            value = func(pipe)
            if self.before_exec is not None:
                self.before_exec, interleaved = None, self.before_exec
                interleaved()
            if any(self.store.get(key) != seen for key, seen in watched.items()):
                continue
            for key, written in pipe.queued:
                self.store[key] = written
            return value if value_from_callable else [True] * len(pipe.queued)


def make_limiter(fake=None):
    limiter = RateLimitMiddleware(MagicMock())
    limiter.redis_client = fake or FakeRedis()
    limiter.redis_available = True
    return limiter


def make_request(headers=None, client=("203.0.113.7", 5555), path="/api/v1/properties"):
    scope = {
        "type": "http",
        "method": "GET",
        "path": path,
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
        "query_string": b"",
    }
    return Request(scope)


class TestTokenBucket:
    def test_burst_then_reject(self):
        policy = BucketPolicy("api", 3, 60)
        limiter = make_limiter()
        results = [limiter._take_token(policy, "user:1") for _ in range(4)]

        assert [allowed for allowed, _ in results] == [True, True, True, False]
        assert results[-1][1] >= 1

    def test_buckets_are_per_identifier_and_policy(self):
        limiter = make_limiter()
        api = BucketPolicy("api", 1, 60)
        auth = BucketPolicy("auth", 1, 60)

        assert limiter._take_token(api, "user:1")[0] is True
        assert limiter._take_token(api, "user:1")[0] is False
        assert limiter._take_token(api, "user:2")[0] is True
        assert limiter._take_token(auth, "user:1")[0] is True

    def test_tokens_refill_over_time(self):
        fake = FakeRedis()
        limiter = make_limiter(fake)
        policy = BucketPolicy("api", 1, 60)
        assert limiter._take_token(policy, "ip:1")[0] is True
        assert limiter._take_token(policy, "ip:1")[0] is False

        # Pretend the bucket was last touched a minute ago
        tokens, updated_at = fake.store["rate_limit:api:ip:1"].split(":", 1)
        fake.store["rate_limit:api:ip:1"] = f"{tokens}:{float(updated_at) - 60}"
        assert limiter._take_token(policy, "ip:1")[0] is True

    def test_slow_refill_means_longer_retry(self):
        limiter = make_limiter()
        policy = BucketPolicy("auth", 1, 5)
        limiter._take_token(policy, "ip:1")

        allowed, retry_after = limiter._take_token(policy, "ip:1")

        assert allowed is False
        assert retry_after >= 11

    def test_concurrent_spend_forces_a_retry(self):
        fake = FakeRedis()
        limiter = make_limiter(fake)
        policy = BucketPolicy("api", 1, 60)
        other = []
        # Another request spends the only token between our read and EXEC
        fake.before_exec = lambda: other.append(limiter._take_token(policy, "user:1"))

        allowed, retry_after = limiter._take_token(policy, "user:1")

        assert other == [(True, 0)]
        assert allowed is False
        assert retry_after >= 1
        assert fake.attempts == 3

    def test_redis_errors_allow_request(self):
        broken = MagicMock()
        broken.transaction.side_effect = redis.RedisError("down")
        limiter = make_limiter(broken)
        assert limiter._take_token(BucketPolicy("api", 1, 60), "user:1") == (True, 0)


class TestBucketSelection:
    def test_auth_routes_use_auth_policy_keyed_by_ip(self):
        token = create_access_token({"sub": "user-42"})
        request = make_request({"Authorization": f"Bearer {token}"}, path="/api/v1/auth/login")

        policy, identifier = make_limiter()._bucket_for(request)

        assert policy.name == "auth"
        assert identifier == "ip:203.0.113.7"

    def test_other_routes_use_api_policy(self):
        policy, _ = make_limiter()._bucket_for(make_request())
        assert policy.name == "api"
        assert policy.burst == get_settings().RATE_LIMIT_BURST


class TestClientIdentifier:
    def test_bearer_token_identifies_user(self):
        token = create_access_token({"sub": "user-42", "role": "homeowner"})
        request = make_request({"Authorization": f"Bearer {token}"})
        assert make_limiter()._get_client_identifier(request) == "user:user-42"

    def test_invalid_token_falls_back_to_ip(self):
        request = make_request({"Authorization": "Bearer not-a-jwt"})
        assert make_limiter()._get_client_identifier(request) == "ip:203.0.113.7"

    def test_anonymous_uses_ip(self):
        assert make_limiter()._get_client_identifier(make_request()) == "ip:203.0.113.7"


class TestMiddleware:
    def _app(self):
        app = FastAPI()

        @app.get("/ping")
        async def ping():
            return {"ok": True}

        @app.get("/health")
        async def health():
            return {"status": "healthy"}

        app.add_middleware(RateLimitMiddleware)
        return app

    def test_returns_429_with_retry_after(self, monkeypatch):
        settings = get_settings()
        monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", True)
        monkeypatch.setattr(settings, "RATE_LIMIT_BURST", 2)
        fake = FakeRedis()
        monkeypatch.setattr(redis, "from_url", lambda *args, **kwargs: fake)

        client = TestClient(self._app())
        assert client.get("/ping").status_code == 200
        assert client.get("/ping").status_code == 200

        response = client.get("/ping")
        assert response.status_code == 429
        assert response.json()["type"] == "rate_limit_exceeded"
        assert int(response.headers["Retry-After"]) >= 1

        # Health checks are never limited
        assert client.get("/health").status_code == 200

    def test_disabled_by_configuration(self, monkeypatch):
        monkeypatch.setattr(get_settings(), "RATE_LIMIT_ENABLED", False)
        from_url = MagicMock()
        monkeypatch.setattr(redis, "from_url", from_url)

        client = TestClient(self._app())
        for _ in range(20):
            assert client.get("/ping").status_code == 200
        from_url.assert_not_called()

    def test_redis_unreachable_allows_everything(self, monkeypatch):
        monkeypatch.setattr(get_settings(), "RATE_LIMIT_ENABLED", True)
        unreachable = MagicMock()
        unreachable.ping.side_effect = redis.ConnectionError("refused")
        monkeypatch.setattr(redis, "from_url", lambda *args, **kwargs: unreachable)

        client = TestClient(self._app())
        for _ in range(20):
            assert client.get("/ping").status_code == 200
