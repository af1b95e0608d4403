"""
modules/tool_usage/route_cache.py
----------------------------------
Route cache injected into RoutingTool. Keys are the ordered waypoint ids of a
routed sequence; values are the normalized legs.

Backends (config.ROUTE_CACHE_BACKEND):
  in_memory -- process-local dict (default)
  redis     -- db/redis_client.py; any Redis failure is logged and treated
               as a cache miss
"""

from __future__ import annotations
import logging
from typing import Optional, Protocol

import redis

import config
from db import redis_client
from schemas.itinerary import NormalizedLeg

logger = logging.getLogger(__name__)


class RouteCache(Protocol):
    def get(self, provider: str, key: str) -> Optional[list[NormalizedLeg]]: ...

    def set(self, provider: str, key: str, legs: list[NormalizedLeg]) -> None: ...


class InMemoryRouteCache:
    def __init__(self) -> None:
        self._store: dict[tuple[str, str], list[NormalizedLeg]] = {}

    def get(self, provider: str, key: str) -> Optional[list[NormalizedLeg]]:
        legs = self._store.get((provider, key))
        return list(legs) if legs is not None else None

    def set(self, provider: str, key: str, legs: list[NormalizedLeg]) -> None:
        self._store[(provider, key)] = list(legs)

    def __len__(self) -> int:
        return len(self._store)


class RedisRouteCache:
    def get(self, provider: str, key: str) -> Optional[list[NormalizedLeg]]:
        try:
            raw = redis_client.get_route(provider, key)
        except redis.RedisError as exc:
            logger.warning("Route cache read failed for %s: %s", key, exc)
            return None
        if raw is None:
            return None
        return [NormalizedLeg.from_dict(d) for d in raw]

    def set(self, provider: str, key: str, legs: list[NormalizedLeg]) -> None:
        try:
            redis_client.set_route(provider, key, [leg.to_dict() for leg in legs])
        except redis.RedisError as exc:
            logger.warning("Route cache write failed for %s: %s", key, exc)


def build_route_cache(backend: Optional[str] = None) -> RouteCache:
    backend = (backend or config.ROUTE_CACHE_BACKEND).lower()
    if backend == "redis":
        return RedisRouteCache()
    if backend != "in_memory":
        logger.warning("Unknown ROUTE_CACHE_BACKEND %r; using in_memory", backend)
    return InMemoryRouteCache()
