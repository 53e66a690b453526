"""Redis-backed rate limiter."""
import logging
import time
from typing import Optional, Tuple
import redis
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from config import SESSION_COOKIE_NAME
from monitoring import rate_limit_exceeded_counter

logger = logging.getLogger(__name__)


class RedisRateLimiter(BaseHTTPMiddleware):
    """
    Sliding window rate limiter shared across service instances through Redis.

    Two tiers:
    - Per IP: higher limit, many visitors may share one address
    - Per session cookie: lower limit for a single browser session

    Requests are allowed when Redis is unavailable.
    """

    def __init__(
        self,
        app,
        redis_client: redis.Redis,
        requests_per_minute_ip: int = 200,
        requests_per_minute_session: int = 120,
        window_seconds: int = 60
    ):
        """
        Initialize Redis-backed rate limiter.

        Args:
            app: FastAPI application
            redis_client: Redis connection
            requests_per_minute_ip: Max requests per IP per window
            requests_per_minute_session: Max requests per session per window
            window_seconds: Sliding window size in seconds
        """
        super().__init__(app)
        self.redis = redis_client
        self.requests_per_minute_ip = requests_per_minute_ip
        self.requests_per_minute_session = requests_per_minute_session
        self.window_seconds = window_seconds

    def _check_rate_limit(self, key: str, limit: int, window: int) -> Tuple[bool, int]:
        """
        Check rate limit using a Redis sorted set of request timestamps.

        Args:
            key: Redis key for this limit (e.g., "rate:ip:192.168.1.1")
            limit: Maximum requests allowed
            window: Time window in seconds

        Returns:
            Tuple of (is_allowed, current_count)
        """
        try:
            current_time = time.time()

            pipe = self.redis.pipeline()
            pipe.zremrangebyscore(key, 0, current_time - window)
            pipe.zcard(key)
            pipe.zadd(key, {str(current_time): current_time})
            pipe.expire(key, window + 1)
            results = pipe.execute()

            # Count before the current request was added
            count = results[1]
            return count < limit, count + 1

        except redis.RedisError as e:
            logger.error(f"Redis rate limit error: {e}")
            return True, 0

    def _rejection(self, limit_type: str, limit: int) -> JSONResponse:
        return JSONResponse(
            status_code=429,
            content={"error": "rate_limited", "limit": limit, "limit_type": limit_type},
            headers={"Retry-After": str(self.window_seconds)}
        )

    async def dispatch(self, request: Request, call_next):
        """
        Apply the IP tier, then the session tier when a session cookie is present.

        Returns:
            Response, or 429 when a limit is exceeded
        """
        client_ip = request.client.host if request.client else "unknown"
        if "x-forwarded-for" in request.headers:
            client_ip = request.headers["x-forwarded-for"].split(",")[0].strip()

        ip_allowed, ip_count = self._check_rate_limit(
            f"rate:ip:{client_ip}",
            self.requests_per_minute_ip,
            self.window_seconds
        )
        if not ip_allowed:
            rate_limit_exceeded_counter.add(1, {"limit_type": "ip"})
            logger.warning(
                f"Rate limit exceeded for IP {client_ip}: "
                f"{ip_count}/{self.requests_per_minute_ip} requests"
            )
            return self._rejection("ip", self.requests_per_minute_ip)

        session_id: Optional[str] = request.cookies.get(SESSION_COOKIE_NAME)
        if session_id:
            session_allowed, session_count = self._check_rate_limit(
                f"rate:session:{session_id}",
                self.requests_per_minute_session,
                self.window_seconds
            )
            if not session_allowed:
                rate_limit_exceeded_counter.add(1, {"limit_type": "session"})
                logger.warning(
                    f"Rate limit exceeded for session: "
                    f"{session_count}/{self.requests_per_minute_session} requests"
                )
                return self._rejection("session", self.requests_per_minute_session)

        return await call_next(request)
