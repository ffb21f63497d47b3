# common/cache.py
import json
import logging
import os
from typing import Any, Optional

import redis

logger = logging.getLogger(__name__)

ROOMS_KEY_PREFIX = "rooms:all:"

_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> Optional[redis.Redis]:
    """
    Return a Redis client if REDIS_URL is configured, otherwise None.
    Fails gracefully (no caching) if Redis is not reachable.
    """
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    redis_url = os.getenv("REDIS_URL")
    if not redis_url:
        return None

    try:
        client = redis.from_url(redis_url, decode_responses=True)
        client.ping()
    except redis.RedisError as exc:
        logger.warning("Redis unavailable at %s, caching disabled: %s", redis_url, exc)
        return None

    _redis_client = client
    return _redis_client


def rooms_cache_key(version: int) -> str:
    """Key of the full room listing at a given sync version."""
    return f"{ROOMS_KEY_PREFIX}v{version}"


def get_cached_rooms(version: int) -> Optional[Any]:
    """
    Return the cached listing for ``version``, or None on a miss, when
    caching is disabled, or when Redis fails mid-request.
    """
    client = get_redis_client()
    if client is None:
        return None

    try:
        raw = client.get(rooms_cache_key(version))
    except redis.RedisError as exc:
        logger.warning("Redis read failed, serving uncached listing: %s", exc)
        return None
    return json.loads(raw) if raw is not None else None


def cache_rooms(version: int, listing: Any, ttl_seconds: int = 60) -> None:
    client = get_redis_client()
    if client is None:
        return
    try:
        client.setex(rooms_cache_key(version), ttl_seconds, json.dumps(listing))
    except redis.RedisError as exc:
        logger.warning("Redis write failed, listing not cached: %s", exc)


def drop_cached_rooms() -> None:
    """
    Delete every cached listing version.

    Superseded versions are never read again; this just frees them before
    their TTL runs out, so a Redis failure here is only logged.
    """
    client = get_redis_client()
    if client is None:
        return
    try:
        for key in client.scan_iter(ROOMS_KEY_PREFIX + "*"):
            client.delete(key)
    except redis.RedisError as exc:
        logger.warning("Redis cleanup of cached listings failed: %s", exc)
