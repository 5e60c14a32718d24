"""Tests for allocation configuration validation."""

from __future__ import annotations

import pytest

from backend.domain.constraints import (
    AllocationConfig,
    AllocationPolicy,
    parse_policy,
    validate_allocation_config,
)


def valid_config(**overrides) -> AllocationConfig:
    """Return a valid baseline AllocationConfig, optionally overriding fields."""
    defaults = {
        "policy": AllocationPolicy.PREFERENCE_ONLY,
        "score_scale": 10,
        "rank_weight": 50.0,
        "cgpa_weight": 5.0,
        "expertise_bonus": 20.0,
    }
    defaults.update(overrides)
    return AllocationConfig(**defaults)


def test_valid_config_passes() -> None:
    validate_allocation_config(valid_config())


def test_default_config_is_preference_only() -> None:
    config = AllocationConfig()
    validate_allocation_config(config)
    assert config.policy is AllocationPolicy.PREFERENCE_ONLY
    assert config.score_scale == 10


def test_policy_must_be_enum_member() -> None:
    with pytest.raises(ValueError):
        validate_allocation_config(valid_config(policy="preference_only"))


def test_score_scale_zero_raises() -> None:
    with pytest.raises(ValueError):
        validate_allocation_config(valid_config(score_scale=0))


def test_rank_weight_negative_raises() -> None:
    with pytest.raises(ValueError):
        validate_allocation_config(valid_config(rank_weight=-1.0))


def test_cgpa_weight_negative_raises() -> None:
    with pytest.raises(ValueError):
        validate_allocation_config(valid_config(cgpa_weight=-0.5))


def test_expertise_bonus_negative_raises() -> None:
    with pytest.raises(ValueError):
        validate_allocation_config(valid_config(expertise_bonus=-1.0))


def test_zero_weights_pass() -> None:
    """Zero weights are valid; they switch a score component off."""
    validate_allocation_config(
        valid_config(rank_weight=0.0, cgpa_weight=0.0, expertise_bonus=0.0)
    )


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("preference_only", AllocationPolicy.PREFERENCE_ONLY),
        (" Composite_With_Fallback ", AllocationPolicy.COMPOSITE_WITH_FALLBACK),
        (AllocationPolicy.COMPOSITE_WITH_FALLBACK, AllocationPolicy.COMPOSITE_WITH_FALLBACK),
    ],
)
def test_parse_policy_accepts_known_values(raw, expected) -> None:
    assert parse_policy(raw) is expected


def test_parse_policy_rejects_unknown_value() -> None:
    with pytest.raises(ValueError, match="preference_only"):
        parse_policy("best_effort")
