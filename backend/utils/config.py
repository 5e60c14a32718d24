"""Environment-driven application settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    log_level: str
    database_path: Path
    seed_demo_data: bool
    allocation_policy: str
    allocation_score_scale: int
    composite_rank_weight: float
    composite_cgpa_weight: float
    composite_expertise_bonus: float
    cgpa_max: float


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Read settings once per process; call ``cache_clear`` to reload."""
    return Settings(
        app_name=os.getenv("APP_NAME", "Supervisor Allocation Service"),
        app_version=os.getenv("APP_VERSION", "1.0.0"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        database_path=Path(
            os.getenv("DATABASE_PATH", str(PROJECT_ROOT / "data" / "allocation.db"))
        ),
        seed_demo_data=_env_bool("SEED_DEMO_DATA", False),
        allocation_policy=os.getenv("ALLOCATION_POLICY", "preference_only"),
        allocation_score_scale=int(os.getenv("ALLOCATION_SCORE_SCALE", "10")),
        composite_rank_weight=float(os.getenv("COMPOSITE_RANK_WEIGHT", "50")),
        composite_cgpa_weight=float(os.getenv("COMPOSITE_CGPA_WEIGHT", "5")),
        composite_expertise_bonus=float(os.getenv("COMPOSITE_EXPERTISE_BONUS", "20")),
        cgpa_max=float(os.getenv("CGPA_MAX", "10")),
    )
