"""
db/redis_client.py
-------------------
redis-py client: singleton plus helpers for the route cache key schema.

Key schema:

  route:{provider}:{place_id_1}>{place_id_2}>...
       Type : String (JSON list of NormalizedLeg dicts)
       TTL  : ROUTE_CACHE_TTL  (default 604,800 s = 7 days)

Environment variables (set in config.py):
    REDIS_HOST        default: localhost
    REDIS_PORT        default: 6379
    REDIS_DB          default: 0
    REDIS_PASSWORD    default: ""  (empty = no auth)
    ROUTE_CACHE_TTL   default: 604800
"""

from __future__ import annotations

import json
from typing import Any

import redis

import config

# Module-level singleton; initialised lazily on first call to get_redis()
_client: redis.Redis | None = None


def get_redis() -> redis.Redis:
    """Return the singleton Redis client, creating it on first call."""
    global _client
    if _client is None:
        kwargs: dict[str, Any] = {
            "host":             config.REDIS_HOST,
            "port":             config.REDIS_PORT,
            "db":               config.REDIS_DB,
            "decode_responses": True,   # return str, not bytes
        }
        if config.REDIS_PASSWORD:
            kwargs["password"] = config.REDIS_PASSWORD
        _client = redis.Redis(**kwargs)
    return _client


# ── Route cache ────────────────────────────────────────────────────────────────

def route_key(provider: str, cache_key: str) -> str:
    return f"route:{provider}:{cache_key}"


def get_route(provider: str, cache_key: str) -> list[dict] | None:
    """Return the cached leg dicts, or None on cache miss."""
    val = get_redis().get(route_key(provider, cache_key))
    return json.loads(val) if val is not None else None


def set_route(provider: str, cache_key: str, legs: list[dict]) -> None:
    """Write one routed waypoint sequence with ROUTE_CACHE_TTL expiry."""
    get_redis().setex(
        route_key(provider, cache_key),
        config.ROUTE_CACHE_TTL,
        json.dumps(legs),
    )
