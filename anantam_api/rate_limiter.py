"""
Hybrid in-memory + Redis rate limiting

Counters live in process memory and are written through to Redis every few
seconds, so a restarted worker picks up the window where it left off.
"""

import logging
import time
from threading import Lock
from typing import Optional

import redis
from fastapi import HTTPException, Request, status

from .config import REDIS_DB, REDIS_HOST, REDIS_PASSWORD, REDIS_PORT, REDIS_URL

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None

# {key: {"count": int, "reset_time": int, "last_redis_sync": int}}
memory_cache: dict[str, dict] = {}
cache_lock = Lock()

MEMORY_CACHE_SYNC_INTERVAL = 10
MEMORY_CACHE_CLEANUP_INTERVAL = 60
last_cleanup_time = 0


def get_redis_client() -> redis.Redis:
    """Get or lazily create the shared Redis client"""
    global redis_client

    if redis_client is None:
        options = {
            "decode_responses": True,
            "socket_connect_timeout": 5,
            "socket_timeout": 5,
            "retry_on_timeout": True,
            "health_check_interval": 30,
        }
        if REDIS_URL:
            logger.info("📡 Connecting to Redis via REDIS_URL for rate limiting")
            client = redis.from_url(REDIS_URL, **options)
        else:
            logger.info(f"📡 Connecting to Redis at {REDIS_HOST}:{REDIS_PORT} for rate limiting")
            client = redis.Redis(
                host=REDIS_HOST, port=REDIS_PORT, password=REDIS_PASSWORD, db=REDIS_DB, **options
            )
        try:
            client.ping()
        except Exception as e:
            logger.error(f"❌ Failed to connect to Redis: {e}")
            raise
        redis_client = client

    return redis_client


def cleanup_expired_cache():
    """Drop memory entries whose window has ended"""
    global last_cleanup_time
    now = int(time.time())

    if now - last_cleanup_time < MEMORY_CACHE_CLEANUP_INTERVAL:
        return

    with cache_lock:
        expired = [k for k, v in memory_cache.items() if now >= v.get("reset_time", 0)]
        for k in expired:
            del memory_cache[k]

    last_cleanup_time = now


def _load_entry(key: str, window_seconds: int, client: redis.Redis, now: int) -> dict:
    try:
        stored = client.get(key)
        ttl = client.ttl(key)
        if stored and ttl > 0:
            return {"count": int(stored), "reset_time": now + ttl, "last_redis_sync": now}
    except Exception as e:
        logger.warning(f"⚠️ Failed to load {key} from Redis, using memory only: {e}")
    return {"count": 0, "reset_time": now + window_seconds, "last_redis_sync": now}


def check_rate_limit(
    key: str, limit: int, window_seconds: int, client: redis.Redis
) -> tuple[bool, int, int]:
    """
    Count one request against `key`.

    Returns:
        Tuple of (is_allowed, current_count, ttl_seconds). Any internal
        error denies the request.
    """
    try:
        now = int(time.time())
        cleanup_expired_cache()

        with cache_lock:
            entry = memory_cache.get(key)
            if entry is None:
                entry = memory_cache[key] = _load_entry(key, window_seconds, client, now)

            if now >= entry["reset_time"]:
                entry.update(count=0, reset_time=now + window_seconds, last_redis_sync=0)

            is_allowed = entry["count"] < limit
            if is_allowed:
                entry["count"] += 1

            if now - entry["last_redis_sync"] >= MEMORY_CACHE_SYNC_INTERVAL:
                try:
                    client.set(key, entry["count"], ex=window_seconds)
                    entry["last_redis_sync"] = now
                except Exception as e:
                    logger.warning(f"⚠️ Failed to sync {key} to Redis: {e}")

            return is_allowed, entry["count"], max(0, entry["reset_time"] - now)

    except Exception as e:
        logger.error(f"❌ Rate limit check failed, denying request: {e}")
        return False, limit, 0


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def rate_limit_dependency(
    request: Request,
    limit: int,
    window_seconds: int,
    key_prefix: str = "rate_limit",
    use_ip: bool = True,
):
    """FastAPI dependency body: 429 when over the limit, 503 when the limiter is down"""
    try:
        client = get_redis_client()
        key = f"{key_prefix}:{client_ip(request)}" if use_ip else f"{key_prefix}:global"

        is_allowed, current_count, ttl = check_rate_limit(key, limit, window_seconds, client)

        if not is_allowed:
            logger.warning(f"🚫 Rate limit exceeded for {key} ({current_count}/{limit})")
            raise HTTPException(
                status_code=429,
                detail={
                    "message": f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.",
                    "retry_after": ttl,
                },
                headers={"Retry-After": str(ttl)},
            )

        request.state.rate_limit_remaining = limit - current_count

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Rate limiting unavailable, denying request: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Rate limiting service temporarily unavailable",
        ) from e


def create_rate_limiter(
    limit: int, window_seconds: int, key_prefix: str = "rate_limit", use_ip: bool = True
):
    """
    Build a rate limiter dependency.

        contact_limit = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="contact")

        @router.post("/contact")
        async def submit(data: ContactRequest, _: None = Depends(contact_limit)):
            ...
    """

    async def rate_limiter(request: Request):
        return await rate_limit_dependency(request, limit, window_seconds, key_prefix, use_ip)

    return rate_limiter
