"""
db/
----
Storage access layer for the road-trip planner.

Storage architecture:
  Redis (redis-py): optional volatile route cache
    route:{provider}:{id1>id2>...}  TTL = ROUTE_CACHE_TTL (7 days)

Trips themselves are plain JSON documents (see modules/input/trip_loader.py);
nothing is persisted server-side.

Public exports:
    from db import get_redis
"""

from db.redis_client import get_redis

__all__ = ["get_redis"]
