"""
Rate Limiting Middleware

Token buckets in Redis. Each request is charged against one bucket
policy:

- ``auth``: login/register/refresh, keyed by client IP only, small and
  slow to refill so password guessing stays expensive;
- ``api``: everything else, keyed by the bearer token's user id when
  there is one, else by IP.

Bucket state is one Redis string, ``"<tokens>:<updated_at>"``, updated
in a WATCH/MULTI transaction and expiring after a minute of inactivity.
Stripe webhooks, health checks and docs are never limited. If Redis is
unreachable the limiter lets everything through.
"""
from collections import namedtuple
from typing import Tuple
import logging
import time

import redis
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from homecare.config import get_settings
from homecare.core.exceptions import RateLimitExceeded
from homecare.core.security import token_subject
from homecare.utils.logging import log_security_event

logger = logging.getLogger(__name__)

BucketPolicy = namedtuple("BucketPolicy", ["name", "burst", "per_minute"])

EXEMPT_PREFIXES = (
    "/docs",
    "/redoc",
    "/openapi.json",
    "/health",
    "/api/v1/stripe/webhook",
)
AUTH_PREFIX = "/api/v1/auth/"
BUCKET_TTL_SECONDS = 60


class RateLimitMiddleware(BaseHTTPMiddleware):

    def __init__(self, app):
        super().__init__(app)
        settings = get_settings()

        self.enabled = settings.RATE_LIMIT_ENABLED
        self.api_policy = BucketPolicy("api", settings.RATE_LIMIT_BURST, settings.RATE_LIMIT_PER_MINUTE)
        self.auth_policy = BucketPolicy("auth", settings.RATE_LIMIT_AUTH_BURST, settings.RATE_LIMIT_AUTH_PER_MINUTE)
        self.redis_client = None
        self.redis_available = False

        if not self.enabled:
            logger.info("Rate limiting disabled by configuration")
            return

        try:
            self.redis_client = redis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5
            )
            self.redis_client.ping()
            self.redis_available = True
            logger.info("Redis connection established for rate limiting")
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.error(f"Redis connection failed, rate limiting off: {e}")

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not (self.enabled and self.redis_available) or path.startswith(EXEMPT_PREFIXES):
            return await call_next(request)

        policy, identifier = self._bucket_for(request)
        # redis-py is blocking; keep it off the event loop
        allowed, retry_after = await run_in_threadpool(self._take_token, policy, identifier)

        if not allowed:
            log_security_event(
                "rate_limit_exceeded",
                {"client": identifier, "path": path, "reason": policy.name},
                logger
            )
            exc = RateLimitExceeded(retry_after)
            return JSONResponse(
                status_code=exc.status_code,
                content={"detail": exc.detail, "type": "rate_limit_exceeded", "retry_after": retry_after},
                headers=exc.headers
            )

        return await call_next(request)

    def _bucket_for(self, request: Request) -> Tuple[BucketPolicy, str]:
        if request.url.path.startswith(AUTH_PREFIX):
            return self.auth_policy, self._client_ip(request)
        return self.api_policy, self._get_client_identifier(request)

    def _take_token(self, policy: BucketPolicy, identifier: str) -> Tuple[bool, int]:
        """
        Spend one token from the caller's bucket.

        Read and write run as a WATCH/MULTI transaction, retried when
        another request touches the same bucket in between.
        Returns (allowed, retry_after_seconds).
        """
        key = f"rate_limit:{policy.name}:{identifier}"
        refill_per_second = policy.per_minute / 60.0

        def spend(pipe) -> Tuple[bool, int]:
            now = time.time()
            state = pipe.get(key)
            if state is None:
                tokens = float(policy.burst)
            else:
                stored_tokens, updated_at = state.split(":", 1)
                elapsed = max(0.0, now - float(updated_at))
                tokens = min(float(policy.burst), float(stored_tokens) + elapsed * refill_per_second)

            if tokens < 1:
                return False, int((1 - tokens) / refill_per_second) + 1

            pipe.multi()
            pipe.setex(key, BUCKET_TTL_SECONDS, f"{tokens - 1}:{now}")
            return True, 0

        try:
            return self.redis_client.transaction(spend, key, value_from_callable=True)
        except redis.RedisError as e:
            logger.error(f"Redis error in rate limiting: {e}")
            return True, 0

    @staticmethod
    def _client_ip(request: Request) -> str:
        return f"ip:{request.client.host if request.client else 'unknown'}"

    def _get_client_identifier(self, request: Request) -> str:
        """User id from a valid bearer token, otherwise the client IP."""
        auth_header = request.headers.get("authorization", "")
        if auth_header.lower().startswith("bearer "):
            user_id = token_subject(auth_header[7:].strip())
            if user_id:
                return f"user:{user_id}"
        return self._client_ip(request)
