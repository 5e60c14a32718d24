"""
app.py — FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the repository and services, registers routers, and runs startup
initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from backend.controllers.allocation_controller import router as allocation_router
from backend.controllers.roster_controller import router as roster_router
from backend.domain.constraints import parse_policy
from backend.repository.data_repository import DataRepository
from backend.services.matching_service import AllocationService
from backend.services.roster_service import RosterService
from backend.services.stats_service import AllocationStatsService
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Services are attached to app.state and resolved by the controller
    dependencies, so tests can build an app around a temporary database.
    """
    settings = settings or get_settings()

    # --- Repository (single SQLite connection factory) ---
    repository = DataRepository(settings)

    # --- Services ---
    allocation_service = AllocationService(repository=repository, settings=settings)
    roster_service = RosterService(repository=repository, settings=settings)
    stats_service = AllocationStatsService(repository=repository, settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # --- Routers ---
    app.include_router(roster_router)
    app.include_router(allocation_router)

    app.state.settings = settings
    app.state.repository = repository
    app.state.allocation_service = allocation_service
    app.state.roster_service = roster_service
    app.state.stats_service = stats_service

    return app


def _startup(app: FastAPI) -> None:
    """Idempotent startup sequence. Safe to re-run on server restarts."""
    repository: DataRepository = app.state.repository
    settings: Settings = app.state.settings

    # Unknown policy names fail at boot.
    policy = parse_policy(settings.allocation_policy)

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    if settings.seed_demo_data:
        logger.info("Startup: seeding demo roster (skipped if roster not empty)")
        repository.seed_demo_data_if_empty()

    logger.info("Startup complete | allocation_policy=%s", policy.value)


# Module-level app object for uvicorn
app = create_app()
