"""
config.py
---------
Central configuration for the road-trip planner.
All values are loaded from environment variables with safe defaults.

The itinerary scheduler itself is pure: it only reads IMPLICIT_DWELL_MINUTES
as a constructor default. Everything else here feeds the surrounding layers
(normalization, routing, caching, logging, API).
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the backend directory (if it exists) so env vars in that file
# are picked up by os.getenv() below.
_env_path = Path(__file__).parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path, override=True)

# ── Trip defaults (applied by the normalizer, never by the scheduler) ─────────
DEFAULT_BUFFER_MINUTES_PER_STOP: int = int(os.getenv("DEFAULT_BUFFER_MINUTES_PER_STOP", "20"))
DEFAULT_DAY_START_HHMM: str = os.getenv("DEFAULT_DAY_START_HHMM", "08:00")
DEFAULT_DAY_END_HHMM:   str = os.getenv("DEFAULT_DAY_END_HHMM",   "23:59")

# Placeholder "Time at X" dwell inserted after an arrival with no declared blocks
IMPLICIT_DWELL_MINUTES: int = int(os.getenv("IMPLICIT_DWELL_MINUTES", "90"))

# Dwell assigned when a schema-v1 preset day trip is migrated to the v2 shape
LEGACY_DAY_TRIP_DWELL_MINUTES: int = int(os.getenv("LEGACY_DAY_TRIP_DWELL_MINUTES", "120"))

# ── Routing provider ──────────────────────────────────────────────────────────
# "estimate" → haversine × detour factor at a fixed speed (no network)
# "osrm"     → OSRM HTTP route service
ROUTING_PROVIDER: str = os.getenv("ROUTING_PROVIDER", "estimate").lower()

OSRM_BASE_URL: str        = os.getenv("OSRM_BASE_URL", "https://router.project-osrm.org")
OSRM_REQUEST_TIMEOUT: int = int(os.getenv("OSRM_REQUEST_TIMEOUT", "30"))   # seconds

# Estimator knobs used by DistanceTool
DRIVING_FALLBACK_SPEED_KMH: float = float(os.getenv("DRIVING_FALLBACK_SPEED_KMH", "88.0"))
ROAD_DETOUR_FACTOR:         float = float(os.getenv("ROAD_DETOUR_FACTOR",         "1.25"))

# ── Route cache ───────────────────────────────────────────────────────────────
# "in_memory" | "redis"
ROUTE_CACHE_BACKEND: str = os.getenv("ROUTE_CACHE_BACKEND", "in_memory").lower()

REDIS_HOST: str     = os.getenv("REDIS_HOST",     "localhost")
REDIS_PORT: int     = int(os.getenv("REDIS_PORT", "6379"))
REDIS_DB: int       = int(os.getenv("REDIS_DB",   "0"))
REDIS_PASSWORD: str = os.getenv("REDIS_PASSWORD", "")
# TTL (seconds)
ROUTE_CACHE_TTL: int = int(os.getenv("ROUTE_CACHE_TTL", "604800"))   # 7 days

# ── Observability ─────────────────────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
LOGS_DIR: str  = os.getenv("LOGS_DIR", str(Path(__file__).resolve().parent.parent / "logs"))
