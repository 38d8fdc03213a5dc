# utils/backpressure.py
from __future__ import annotations

import asyncio
import logging
import os
import time
from typing import Optional

from redis.asyncio import Redis
from redis.asyncio.client import Redis as RedisType

logger = logging.getLogger("bot.backpressure")


# =========================
# Circuit breakers (per upstream)
# =========================
# The catalog is rate-limited; when it answers 429 we stop calling it for the
# advertised Retry-After instead of hammering it from every pull loop.
_lock = asyncio.Lock()
_until: dict[str, float] = {}


def now() -> float:
    return time.time()


async def is_open(name: str = "catalog") -> int:
    """Returns remaining seconds if the breaker is open, else 0."""
    async with _lock:
        rem = int(_until.get(name, 0.0) - now())
        return rem if rem > 0 else 0


async def trip(seconds: int, name: str = "catalog") -> None:
    """Open the breaker for N seconds (never shortens an open breaker)."""
    seconds = max(1, int(seconds))
    async with _lock:
        prev = float(_until.get(name, 0.0))
        _until[name] = max(prev, now() + seconds)
        extended = _until[name] > prev + 1

    if extended:
        logger.warning("Circuit breaker %r open for ~%ss", name, seconds)


async def reset(name: str = "catalog") -> None:
    async with _lock:
        _until.pop(name, None)


# =========================
# Redis client
# =========================

# Redis client singleton (per process)
_redis: Optional[RedisType] = None
_redis_lock = asyncio.Lock()


def _redis_url() -> str:
    # Hosting providers expose REDIS_URL and/or REDIS_PRIVATE_URL.
    url = (
        (os.getenv("REDIS_URL") or "").strip()
        or (os.getenv("REDIS_PRIVATE_URL") or "").strip()
        or (os.getenv("REDIS_PUBLIC_URL") or "").strip()
    )
    if not url:
        raise RuntimeError("Redis URL is missing. Set REDIS_URL (or REDIS_PRIVATE_URL).")
    return url


async def get_redis() -> RedisType:
    global _redis
    if _redis is not None:
        return _redis
    async with _redis_lock:
        if _redis is not None:
            return _redis
        _redis = Redis.from_url(
            _redis_url(),
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=10,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        return _redis


async def get_redis_or_none() -> Optional[RedisType]:
    """Best-effort Redis getter.

    Returns None if Redis is missing/unavailable.
    Callers should degrade gracefully instead of crashing the bot.
    """
    try:
        return await get_redis()
    except Exception:
        return None
