"""
Rate Limiter Utility
Token bucket rate limiter shared by every upstream request
"""
import asyncio
import time
from typing import Dict


class RateLimiter:
    """Token bucket rate limiter with shared state per service"""

    _instances: Dict[str, "RateLimiter"] = {}
    _lock = asyncio.Lock()

    def __init__(self, service_name: str, rate: int):
        self.service_name = service_name
        self.rate = rate  # requests per second, 0 disables limiting
        self.tokens = float(rate)
        self.last_update = time.monotonic()
        self.lock = asyncio.Lock()

    @classmethod
    async def get_limiter(cls, service_name: str, rate: int) -> "RateLimiter":
        """Get or create a shared rate limiter for a service"""
        async with cls._lock:
            if service_name not in cls._instances:
                cls._instances[service_name] = cls(service_name, rate)
            return cls._instances[service_name]

    @classmethod
    def reset(cls):
        """Forget every shared limiter (used between test runs)"""
        cls._instances.clear()

    async def acquire(self):
        """Acquire a token, waiting if necessary"""
        if self.rate <= 0:
            return

        async with self.lock:
            now = time.monotonic()
            elapsed = now - self.last_update

            # Refill based on time elapsed
            self.tokens = min(self.rate, self.tokens + elapsed * self.rate)
            self.last_update = now

            if self.tokens >= 1:
                self.tokens -= 1
            else:
                wait_time = (1 - self.tokens) / self.rate
                await asyncio.sleep(wait_time)
                self.tokens = 0
                self.last_update = time.monotonic()
