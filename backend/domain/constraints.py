"""Domain-level configuration rules for the allocation pass."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class AllocationPolicy(str, Enum):
    PREFERENCE_ONLY = "preference_only"
    COMPOSITE_WITH_FALLBACK = "composite_with_fallback"


@dataclass(frozen=True)
class AllocationConfig:
    policy: AllocationPolicy = AllocationPolicy.PREFERENCE_ONLY
    score_scale: int = 10
    rank_weight: float = 50.0
    cgpa_weight: float = 5.0
    expertise_bonus: float = 20.0


def parse_policy(value: str | AllocationPolicy) -> AllocationPolicy:
    if isinstance(value, AllocationPolicy):
        return value
    try:
        return AllocationPolicy(str(value).strip().lower())
    except ValueError as exc:
        allowed = ", ".join(policy.value for policy in AllocationPolicy)
        raise ValueError(f"allocation policy must be one of: {allowed}") from exc


def validate_allocation_config(config: AllocationConfig) -> None:
    if not isinstance(config.policy, AllocationPolicy):
        raise ValueError("policy must be an AllocationPolicy")
    if config.score_scale <= 0:
        raise ValueError("score_scale must be > 0")
    if config.rank_weight < 0.0:
        raise ValueError("rank_weight must be >= 0")
    if config.cgpa_weight < 0.0:
        raise ValueError("cgpa_weight must be >= 0")
    if config.expertise_bonus < 0.0:
        raise ValueError("expertise_bonus must be >= 0")
