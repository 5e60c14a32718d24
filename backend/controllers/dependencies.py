"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from backend.services.matching_service import AllocationService
from backend.services.roster_service import RosterService
from backend.services.stats_service import AllocationStatsService


def _require_state(request: Request, attribute: str, label: str):
    service = getattr(request.app.state, attribute, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} service is not initialized",
        )
    return service


def get_allocation_service(request: Request) -> AllocationService:
    return _require_state(request, "allocation_service", "Allocation")


def get_roster_service(request: Request) -> RosterService:
    return _require_state(request, "roster_service", "Roster")


def get_stats_service(request: Request) -> AllocationStatsService:
    return _require_state(request, "stats_service", "Stats")
