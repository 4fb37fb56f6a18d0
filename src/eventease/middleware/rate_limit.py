"""Rate limiting middleware — Redis-based fixed window per minute.

Learn: Each IP gets a counter key like "eventease:rl:{ip}:{bucket}:{minute}".
Credential endpoints (login, register, Google ID-token login) get a
stricter limit to slow down password guessing.

The Redis client lives on app.state.redis, set by the lifespan when Redis
is reachable. Without it (e.g. in tests) rate limiting is skipped.
"""

import time
from typing import Optional

import redis.asyncio as aioredis
import structlog
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = structlog.get_logger()

CREDENTIAL_PATHS = (
    "/api/auth/login",
    "/api/auth/register",
    "/api/auth/google/login",
    "/api/users/login",
)


async def connect_redis(url: str) -> aioredis.Redis:
    """Open a Redis connection pool and verify it answers."""
    client = aioredis.from_url(url, encoding="utf-8", decode_responses=True)
    await client.ping()
    return client


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Redis-based rate limiting per IP per minute."""

    def __init__(self, app, default_rpm: int = 100, auth_rpm: int = 10):
        super().__init__(app)
        self.default_rpm = default_rpm
        self.auth_rpm = auth_rpm

    def _is_credential_request(self, request: Request) -> bool:
        path = request.url.path
        if path == "/api/users" and request.method == "POST":
            return True  # registration alias
        return path.startswith(CREDENTIAL_PATHS)

    async def dispatch(self, request: Request, call_next) -> Response:
        redis: Optional[aioredis.Redis] = getattr(request.app.state, "redis", None)
        if redis is None:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        is_auth = self._is_credential_request(request)
        rpm = self.auth_rpm if is_auth else self.default_rpm

        window = int(time.time() // 60)
        bucket = "auth" if is_auth else "api"
        key = f"eventease:rl:{client_ip}:{bucket}:{window}"

        try:
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, 120)
        except RedisError as e:
            # Redis hiccup: let the request through
            logger.warning("rate_limit.redis_error", error=str(e))
            return await call_next(request)

        if count > rpm:
            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "message": "Rate limit exceeded. Try again later.",
                },
                headers={"Retry-After": "60"},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(rpm)
        response.headers["X-RateLimit-Remaining"] = str(max(0, rpm - count))
        return response
