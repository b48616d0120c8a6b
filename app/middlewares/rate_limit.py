# app/middlewares/rate_limit.py
import time

from fastapi import Request
from redis.asyncio import Redis
from starlette.middleware.base import BaseHTTPMiddleware

from app.platform.config import settings
from app.platform.exceptions import RateLimitError
from app.platform.logger import get_logger
from app.platform.response import api_response

logger = get_logger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Fixed-window limit per client IP and path, configured by settings.RATE_LIMITS.
    Uses Redis when REDIS_URL is set, an in-process store otherwise.
    """

    def __init__(self, app):
        super().__init__(app)
        self.redis = None
        self.memory_store = {}

    def _rejected(self, retry_after: int):
        exc = RateLimitError(retry_after=max(retry_after, 1))
        return api_response(
            data=exc.data,
            message=exc.message,
            status_code=exc.status_code,
            headers={"Retry-After": str(exc.retry_after)},
        )

    async def dispatch(self, request: Request, call_next):
        client_ip = request.client.host if request.client else "testclient"

        # Skip limit if whitelisted
        if client_ip in settings.WHITELIST_IPS:
            return await call_next(request)

        path = request.url.path
        limit = settings.RATE_LIMITS.get(path)

        # If endpoint is not rate-limited, continue
        if limit is None or request.method == "OPTIONS":
            return await call_next(request)

        max_requests, window = limit

        # ---------------------------
        # In-memory store
        # ---------------------------
        if settings.FORCE_IN_MEMORY_RATE_LIMITER or not settings.REDIS_URL:
            key = f"{client_ip}:{path}"
            now = time.time()
            count, expiry = self.memory_store.get(key, (0, now + window))

            if now > expiry:
                count = 0
                expiry = now + window

            if count >= max_requests:
                logger.warning(f"Rate limit hit for {key}")
                return self._rejected(int(expiry - now))

            self.memory_store[key] = (count + 1, expiry)
            return await call_next(request)

        # ---------------------------
        # Redis store
        # ---------------------------
        if self.redis is None:
            self.redis = Redis.from_url(settings.REDIS_URL, decode_responses=True)

        key = f"rl:{client_ip}:{path}"
        current_count = await self.redis.get(key)

        if current_count is None:
            await self.redis.set(key, 1, ex=window)
        else:
            if int(current_count) >= max_requests:
                ttl = await self.redis.ttl(key)
                logger.warning(f"Rate limit hit for {key}")
                return self._rejected(ttl)
            await self.redis.incr(key)

        return await call_next(request)
