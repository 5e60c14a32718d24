from __future__ import annotations

from dataclasses import replace

import pytest

from backend.domain.constraints import AllocationConfig, AllocationPolicy
from backend.domain.models import FALLBACK_PREFERENCE_RANK, Professor, Student
from backend.services.matching_service import (
    build_allocation_config,
    expertise_matches,
    run_allocation,
)
from backend.utils.config import get_settings


COMPOSITE = AllocationConfig(policy=AllocationPolicy.COMPOSITE_WITH_FALLBACK)


def _student(roll: str, cgpa: float, preferences=(), domain: str = "") -> Student:
    return Student(
        roll=roll,
        name=f"Student {roll}",
        cgpa=cgpa,
        domain=domain,
        preferences=tuple(preferences),
    )


def test_composite_score_blends_rank_cgpa_and_expertise():
    professors = [
        Professor(name="Dr. Smith", capacity=1, expertise="Machine Learning, Vision"),
        Professor(name="Dr. Jones", capacity=1, expertise="Compilers"),
    ]
    students = [
        _student("ML", 8.0, ["Dr. Smith"], domain="machine learning"),
        _student("SYS", 9.0, ["Dr. Smith", "Dr. Jones"], domain="Networks"),
    ]

    outcome = run_allocation(students, professors, config=COMPOSITE)
    by_roll = {item.student_roll: item for item in outcome.assignments}

    # SYS is served first and takes Dr. Smith at rank 1 without a domain match.
    assert by_roll["SYS"].professor_name == "Dr. Smith"
    assert by_roll["SYS"].allocation_score == 50 + 45
    # ML finds Dr. Smith full and falls back to the only open seat.
    assert by_roll["ML"].professor_name == "Dr. Jones"
    assert by_roll["ML"].preference_rank == FALLBACK_PREFERENCE_RANK
    assert by_roll["ML"].is_fallback
    assert by_roll["ML"].allocation_score == 40


def test_composite_score_rank_two_with_expertise_bonus():
    professors = [
        Professor(name="Dr. Smith", capacity=1, expertise="Databases"),
        Professor(name="Dr. Jones", capacity=1, expertise="Distributed Databases"),
    ]
    students = [
        _student("FIRST", 9.0, ["Dr. Smith"]),
        _student("SECOND", 8.0, ["Dr. Smith", "Dr. Jones"], domain="databases"),
    ]

    outcome = run_allocation(students, professors, config=COMPOSITE)

    second = outcome.assignments[1]
    assert second.professor_name == "Dr. Jones"
    assert second.preference_rank == 2
    assert second.allocation_score == 25 + 40 + 20


def test_fallback_prefers_expertise_match():
    professors = [
        Professor(name="Dr. A", capacity=1, expertise="Databases"),
        Professor(name="Dr. B", capacity=3, expertise="Robotics"),
        Professor(name="Dr. C", capacity=1, expertise="Computer Networks"),
    ]
    students = [
        _student("TOP", 9.0, ["Dr. A"]),
        _student("NET", 8.0, ["Dr. A"], domain="Networks"),
    ]

    outcome = run_allocation(students, professors, config=COMPOSITE)

    fallback = outcome.assignments[1]
    assert fallback.professor_name == "Dr. C"
    assert fallback.preference_rank == 0
    assert fallback.allocation_score == 40 + 20


def test_fallback_without_match_uses_most_free_seats():
    professors = [
        Professor(name="Dr. A", capacity=1, expertise="Databases"),
        Professor(name="Dr. B", capacity=3, expertise="Robotics"),
        Professor(name="Dr. C", capacity=3, expertise="Vision"),
    ]
    students = [_student("NOPREFS", 7.0, [], domain="History")]

    outcome = run_allocation(students, professors, config=COMPOSITE)

    assert outcome.assignments[0].professor_name == "Dr. B"
    assert outcome.assignments[0].allocation_score == 35


def test_fallback_still_stops_when_seats_run_out():
    professors = [Professor(name="Dr. A", capacity=2)]
    students = [_student(f"S{i}", 9.0 - i, []) for i in range(4)]

    outcome = run_allocation(students, professors, config=COMPOSITE)

    assert [item.student_roll for item in outcome.assignments] == ["S0", "S1"]
    assert outcome.unassigned_rolls == ["S2", "S3"]


def test_preference_only_policy_never_falls_back():
    professors = [Professor(name="Dr. A", capacity=2)]
    students = [_student("S1", 9.0, [])]

    default_outcome = run_allocation(students, professors)
    composite_outcome = run_allocation(students, professors, config=COMPOSITE)

    assert default_outcome.assignments == []
    assert default_outcome.policy == "preference_only"
    assert len(composite_outcome.assignments) == 1
    assert composite_outcome.policy == "composite_with_fallback"


@pytest.mark.parametrize(
    ("domain", "expertise", "expected"),
    [
        ("Machine Learning", "machine learning and vision", True),
        ("AI and Machine Learning", "Machine Learning", True),
        ("", "Machine Learning", False),
        ("Networks", "", False),
        ("Databases", "Robotics", False),
    ],
)
def test_expertise_matches(domain, expertise, expected):
    assert expertise_matches(domain, expertise) is expected


def test_build_allocation_config_reads_settings_and_override():
    settings = replace(
        get_settings(),
        allocation_policy="composite_with_fallback",
        composite_rank_weight=30.0,
    )

    configured = build_allocation_config(settings)
    overridden = build_allocation_config(settings, "preference_only")

    assert configured.policy is AllocationPolicy.COMPOSITE_WITH_FALLBACK
    assert configured.rank_weight == 30.0
    assert overridden.policy is AllocationPolicy.PREFERENCE_ONLY


def test_build_allocation_config_rejects_unknown_policy():
    settings = replace(get_settings(), allocation_policy="lottery")
    with pytest.raises(ValueError):
        build_allocation_config(settings)


def test_fallback_ties_follow_professor_input_order_with_duplicate_names():
    professors = [
        Professor(name="Dr. A", capacity=2),
        Professor(name="Dr. B", capacity=2),
        Professor(name="dr. a", capacity=2),
    ]
    students = [_student("NOPREFS", 7.0, [])]

    outcome = run_allocation(students, professors, config=COMPOSITE)

    # "dr. a" replaced "Dr. A" and now sits at input position 2, after Dr. B.
    assert outcome.assignments[0].professor_name == "Dr. B"
    assert outcome.duplicate_professor_keys == ["dr. a"]
