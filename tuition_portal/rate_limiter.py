"""
Rate limiting for public write endpoints (tutor applications, bespoke enquiries).

Counts live in process memory and are mirrored to Redis every few seconds
when REDIS_URL is set, so several workers converge on one count without a
Redis round trip per request. Without REDIS_URL the limiter is memory-only.
"""

import logging
import os
import time
from threading import Lock
from typing import Optional

import redis
from fastapi import HTTPException, Request, status

logger = logging.getLogger(__name__)

REDIS_URL = os.getenv("REDIS_URL")

redis_client: Optional[redis.Redis] = None

# {key: {"count": int, "reset_time": int, "last_redis_sync": int}}
memory_cache: dict[str, dict] = {}
cache_lock = Lock()

MEMORY_CACHE_SYNC_INTERVAL = 10
MEMORY_CACHE_CLEANUP_INTERVAL = 60
last_cleanup_time = 0


def get_redis_client() -> Optional[redis.Redis]:
    """Shared Redis client, or None when rate limits are kept in memory only"""
    global redis_client

    if not REDIS_URL:
        return None

    if redis_client is None:
        masked = REDIS_URL.split("@")[-1] if "@" in REDIS_URL else "****"
        logger.info(f"📡 Connecting rate limiter to Redis at {masked}")
        try:
            redis_client = redis.from_url(
                REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=15,
                socket_timeout=30,
                retry_on_timeout=True,
                health_check_interval=30,
                max_connections=20,
            )
            redis_client.ping()
        except redis.RedisError as e:
            redis_client = None
            logger.error(f"❌ Failed to connect to Redis: {e}")
            raise

    return redis_client


def reset_rate_limits() -> None:
    """Forget all in-memory counts"""
    with cache_lock:
        memory_cache.clear()


def cleanup_expired_cache():
    global last_cleanup_time
    current_time = int(time.time())

    if current_time - last_cleanup_time < MEMORY_CACHE_CLEANUP_INTERVAL:
        return

    with cache_lock:
        expired_keys = [k for k, v in memory_cache.items() if current_time >= v.get("reset_time", 0)]
        for k in expired_keys:
            del memory_cache[k]

    last_cleanup_time = current_time


def _new_entry(client: Optional[redis.Redis], key: str, window_seconds: int, now: int) -> dict:
    """Start a window, resuming the shared count from Redis when there is one"""
    if client is not None:
        try:
            redis_count = client.get(key)
            redis_ttl = client.ttl(key)
            if redis_count and redis_ttl > 0:
                return {"count": int(redis_count), "reset_time": now + redis_ttl, "last_redis_sync": now}
        except redis.RedisError as e:
            logger.warning(f"⚠️ Failed to load {key} from Redis, using memory only: {e}")
    return {"count": 0, "reset_time": now + window_seconds, "last_redis_sync": now}


def check_rate_limit(
    key: str, limit: int, window_seconds: int, client: Optional[redis.Redis]
) -> tuple[bool, int, int]:
    """Count one request against ``key``. Returns (is_allowed, current_count, ttl_seconds)."""
    current_time = int(time.time())
    cleanup_expired_cache()

    with cache_lock:
        if key not in memory_cache:
            memory_cache[key] = _new_entry(client, key, window_seconds, current_time)

        entry = memory_cache[key]
        if current_time >= entry["reset_time"]:
            entry["count"] = 0
            entry["reset_time"] = current_time + window_seconds
            entry["last_redis_sync"] = 0

        is_allowed = entry["count"] < limit
        if is_allowed:
            entry["count"] += 1

        if client is not None and current_time - entry.get("last_redis_sync", 0) >= MEMORY_CACHE_SYNC_INTERVAL:
            try:
                client.set(key, entry["count"], ex=window_seconds)
                entry["last_redis_sync"] = current_time
            except redis.RedisError as e:
                logger.warning(f"⚠️ Failed to sync {key} to Redis: {e}")

        ttl = max(0, entry["reset_time"] - current_time)
        return is_allowed, entry["count"], ttl


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def rate_limit_dependency(request: Request, limit: int, window_seconds: int, key_prefix: str = "rate_limit"):
    try:
        client = get_redis_client()
    except redis.RedisError as e:
        # Configured but unreachable: refuse rather than run unlimited
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Rate limiting service temporarily unavailable",
        ) from e

    key = f"{key_prefix}:{client_ip(request)}"
    is_allowed, current_count, ttl = check_rate_limit(key, limit, window_seconds, client)

    if not is_allowed:
        logger.warning(f"🚫 Rate limit EXCEEDED for {key} - {current_count}/{limit} requests used")
        raise HTTPException(
            status_code=429,
            detail={
                "message": f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.",
                "retry_after": ttl,
                "limit": limit,
                "window_seconds": window_seconds,
            },
            headers={"Retry-After": str(ttl)},
        )

    request.state.rate_limit_remaining = limit - current_count


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str = "rate_limit"):
    """
    Per-IP rate limiter dependency.

    Example:
        limit_enquiries = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="bespoke_enquiry")

        @router.post("/bespoke/enquiries", dependencies=[Depends(limit_enquiries)])
        async def submit_enquiry(...):
            ...
    """

    async def rate_limiter(request: Request):
        return await rate_limit_dependency(request, limit, window_seconds, key_prefix)

    return rate_limiter
