"""
api/routes/health.py
--------------------
Health-check endpoint used by load balancers and container probes.
"""
from __future__ import annotations

from fastapi import APIRouter

import config

router = APIRouter()


@router.get("/health", summary="Health check")
def health() -> dict:
    """Returns 200 OK when the service is running."""
    return {
        "status": "ok",
        "service": "roadtrip-planner-backend",
        "routing_provider": config.ROUTING_PROVIDER,
    }
