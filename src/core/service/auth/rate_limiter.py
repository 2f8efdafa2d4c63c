"""
Fixed-window rate limiting for the authentication endpoints.

One counter per caller, shared by nonce issuance and verification.
"""

import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Tuple

from pydantic import BaseModel

from src.infra.config.settings import get_settings
from src.core.logger.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()


class RateLimitDecision(BaseModel):
    allowed: bool
    count: int
    limit: int
    retry_after: int  # seconds until the window resets


class AuthRateLimiter(ABC):
    KEY_PREFIX = "auth_rate_limit"

    def __init__(self, max_attempts: Optional[int] = None, window_seconds: Optional[int] = None):
        self.max_attempts = max_attempts or settings.AUTH_RATE_LIMIT_MAX_ATTEMPTS
        self.window_seconds = window_seconds or settings.AUTH_RATE_LIMIT_WINDOW_SECONDS

    def _key(self, caller: str) -> str:
        return f"{self.KEY_PREFIX}:{caller}"

    @abstractmethod
    async def hit(self, caller: str) -> RateLimitDecision:
        """Count one attempt for caller and decide whether it may proceed"""

    @abstractmethod
    async def reset(self, caller: str) -> None:
        pass

    async def close(self) -> None:
        pass


class MemoryRateLimiter(AuthRateLimiter):
    """Per-process counters. Correct for a single worker only."""

    def __init__(
        self,
        max_attempts: Optional[int] = None,
        window_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        super().__init__(max_attempts, window_seconds)
        self.clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}

    def _prune(self, now: float) -> None:
        expired = [k for k, (start, _) in self._windows.items() if now - start >= self.window_seconds]
        for key in expired:
            del self._windows[key]

    async def hit(self, caller: str) -> RateLimitDecision:
        now = self.clock()
        key = self._key(caller)

        start, count = self._windows.get(key, (now, 0))
        if now - start >= self.window_seconds:
            start, count = now, 0
        count += 1
        self._windows[key] = (start, count)

        if len(self._windows) > 10000:
            self._prune(now)

        retry_after = max(1, int(start + self.window_seconds - now))
        return RateLimitDecision(
            allowed=count <= self.max_attempts,
            count=count,
            limit=self.max_attempts,
            retry_after=retry_after
        )

    async def reset(self, caller: str) -> None:
        self._windows.pop(self._key(caller), None)


class RedisRateLimiter(AuthRateLimiter):
    """Counters in Redis, shared by every worker"""

    def __init__(self, redis_client, max_attempts: Optional[int] = None, window_seconds: Optional[int] = None):
        super().__init__(max_attempts, window_seconds)
        self.redis = redis_client

    async def hit(self, caller: str) -> RateLimitDecision:
        key = self._key(caller)
        try:
            count = await self.redis.incr(key)
            if count == 1:
                await self.redis.expire(key, self.window_seconds)
                ttl = self.window_seconds
            else:
                ttl = await self.redis.ttl(key)
                if ttl < 0:
                    # counter lost its expiry; start a new window
                    await self.redis.expire(key, self.window_seconds)
                    ttl = self.window_seconds
        except Exception as e:
            # Fail open: an unavailable Redis must not lock every wallet out
            logger.error(
                f"Error checking rate limit: {str(e)}",
                extra={"client_ip": caller}
            )
            return RateLimitDecision(
                allowed=True,
                count=0,
                limit=self.max_attempts,
                retry_after=self.window_seconds
            )

        return RateLimitDecision(
            allowed=count <= self.max_attempts,
            count=count,
            limit=self.max_attempts,
            retry_after=max(1, int(ttl))
        )

    async def reset(self, caller: str) -> None:
        await self.redis.delete(self._key(caller))

    async def close(self) -> None:
        await self.redis.aclose()


async def create_rate_limiter() -> AuthRateLimiter:
    """Backend chosen by RATE_LIMIT_BACKEND"""
    if settings.RATE_LIMIT_BACKEND == "redis":
        from src.infra.config.redis import get_redis
        return RedisRateLimiter(await get_redis())
    return MemoryRateLimiter()
