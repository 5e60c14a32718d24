"""Capacity-constrained student-to-supervisor matching."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import RLock
from typing import Optional, Sequence

from backend.domain.constraints import (
    AllocationConfig,
    AllocationPolicy,
    parse_policy,
    validate_allocation_config,
)
from backend.domain.models import (
    FALLBACK_PREFERENCE_RANK,
    AllocationOutcome,
    Assignment,
    Professor,
    Student,
)
from backend.repository.data_repository import DataRepository
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class AllocationError(Exception):
    """Base exception for allocation failures."""


class InputError(AllocationError):
    """Raised when there are no students or no professors to allocate."""


@dataclass
class ProfessorSeatState:
    """Mutable seat counter scoped to a single allocation call."""

    display_name: str
    expertise: str
    capacity: int
    input_index: int = 0
    used_seats: int = 0

    @property
    def has_free_seat(self) -> bool:
        return self.used_seats < self.capacity

    @property
    def free_seats(self) -> int:
        return self.capacity - self.used_seats


@dataclass(frozen=True)
class ProfessorTable:
    states: dict[str, ProfessorSeatState]
    total_capacity: int
    duplicate_keys: list[str]


def normalize_professor_name(value: Optional[str]) -> str:
    """Lookup key for professor names: trimmed and case-folded."""
    if value is None:
        return ""
    return str(value).strip().casefold()


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp_capacity(capacity: Optional[int]) -> int:
    try:
        return max(0, int(capacity or 0))
    except (TypeError, ValueError):
        return 0


def build_professor_table(professors: Sequence[Professor]) -> ProfessorTable:
    """Index professors by normalized name.

    Total capacity counts every record, including ones whose key collides with
    an earlier record. On a collision the later record replaces the earlier
    display name and capacity.
    """
    states: dict[str, ProfessorSeatState] = {}
    duplicate_keys: list[str] = []
    total_capacity = 0
    for index, professor in enumerate(professors):
        key = normalize_professor_name(professor.name)
        capacity = _clamp_capacity(professor.capacity)
        if key in states:
            if key not in duplicate_keys:
                duplicate_keys.append(key)
            logger.warning(
                "Duplicate professor name | key=%r | replaced=%r | by=%r",
                key,
                states[key].display_name,
                professor.name,
            )
        states[key] = ProfessorSeatState(
            display_name=professor.name,
            expertise=professor.expertise or "",
            capacity=capacity,
            input_index=index,
        )
        total_capacity += capacity
    return ProfessorTable(
        states=states,
        total_capacity=total_capacity,
        duplicate_keys=duplicate_keys,
    )


def order_students_by_priority(students: Sequence[Student]) -> list[Student]:
    """Stable sort by descending CGPA; missing CGPA goes last."""

    def priority(student: Student) -> float:
        if student.cgpa is None:
            return float("-inf")
        return float(student.cgpa)

    return sorted(students, key=priority, reverse=True)


def expertise_matches(domain: Optional[str], expertise: Optional[str]) -> bool:
    normalized_domain = (domain or "").strip().casefold()
    normalized_expertise = (expertise or "").strip().casefold()
    if not normalized_domain or not normalized_expertise:
        return False
    return normalized_domain in normalized_expertise or normalized_expertise in normalized_domain


def compute_allocation_score(
    student: Student,
    *,
    preference_rank: int,
    professor_expertise: str,
    config: AllocationConfig,
) -> int:
    cgpa = float(student.cgpa or 0.0)
    if config.policy is AllocationPolicy.PREFERENCE_ONLY:
        return round_half_up(cgpa * config.score_scale)

    rank_points = 0.0
    if preference_rank > 0:
        rank_points = config.rank_weight / preference_rank
    bonus = 0.0
    if expertise_matches(student.domain, professor_expertise):
        bonus = config.expertise_bonus
    return round_half_up(rank_points + cgpa * config.cgpa_weight + bonus)


def _select_preferred(
    student: Student,
    states: dict[str, ProfessorSeatState],
) -> tuple[Optional[ProfessorSeatState], int]:
    for index, preferred_name in enumerate(student.preferences or ()):
        state = states.get(normalize_professor_name(preferred_name))
        if state is not None and state.has_free_seat:
            return state, index + 1
    return None, FALLBACK_PREFERENCE_RANK


def _select_fallback(
    student: Student,
    states: dict[str, ProfessorSeatState],
) -> Optional[ProfessorSeatState]:
    # Ties go to the earliest input position of the record that owns the seats.
    available = sorted(
        (state for state in states.values() if state.has_free_seat),
        key=lambda state: state.input_index,
    )
    if not available:
        return None
    for state in available:
        if expertise_matches(student.domain, state.expertise):
            return state
    return max(available, key=lambda state: state.free_seats)


def run_allocation(
    students: Sequence[Student],
    professors: Sequence[Professor],
    *,
    config: Optional[AllocationConfig] = None,
    allocated_at: Optional[datetime] = None,
) -> AllocationOutcome:
    """Match students to professors in a single priority-ordered pass.

    Students are served by descending CGPA. Each takes the first professor in
    their preference list that still has a seat. Under the composite policy a
    student with no available preference is placed with any professor that has
    room, recorded with preference rank 0. The pass stops once every seat is
    taken; remaining students are reported as unassigned.
    """
    if not students or not professors:
        raise InputError("No students or professors found")

    resolved_config = config or AllocationConfig()
    validate_allocation_config(resolved_config)
    timestamp = allocated_at or datetime.now(timezone.utc)

    table = build_professor_table(professors)
    allow_fallback = resolved_config.policy is AllocationPolicy.COMPOSITE_WITH_FALLBACK

    assignments: list[Assignment] = []
    unassigned_rolls: list[str] = []
    ordered = order_students_by_priority(students)
    for position, student in enumerate(ordered):
        if len(assignments) >= table.total_capacity:
            unassigned_rolls.extend(item.roll for item in ordered[position:])
            break

        state, preference_rank = _select_preferred(student, table.states)
        if state is None and allow_fallback:
            state = _select_fallback(student, table.states)
        if state is None:
            logger.debug("No seat for student | roll=%s", student.roll)
            unassigned_rolls.append(student.roll)
            continue

        state.used_seats += 1
        assignments.append(
            Assignment(
                student_name=student.name,
                student_email=student.email,
                student_roll=student.roll,
                student_cgpa=student.cgpa,
                student_domain=student.domain,
                professor_name=state.display_name,
                preference_rank=preference_rank,
                allocation_score=compute_allocation_score(
                    student,
                    preference_rank=preference_rank,
                    professor_expertise=state.expertise,
                    config=resolved_config,
                ),
                created_at=timestamp,
            )
        )

    return AllocationOutcome(
        assignments=assignments,
        unassigned_rolls=unassigned_rolls,
        total_capacity=table.total_capacity,
        policy=resolved_config.policy.value,
        duplicate_professor_keys=table.duplicate_keys,
    )


def allocate(
    students: Sequence[Student],
    professors: Sequence[Professor],
    *,
    config: Optional[AllocationConfig] = None,
    allocated_at: Optional[datetime] = None,
) -> list[Assignment]:
    """Return only the assignment list of :func:`run_allocation`."""
    return run_allocation(
        students,
        professors,
        config=config,
        allocated_at=allocated_at,
    ).assignments


def build_allocation_config(
    settings: Settings,
    policy: Optional[str | AllocationPolicy] = None,
) -> AllocationConfig:
    return AllocationConfig(
        policy=parse_policy(policy if policy is not None else settings.allocation_policy),
        score_scale=settings.allocation_score_scale,
        rank_weight=settings.composite_rank_weight,
        cgpa_weight=settings.composite_cgpa_weight,
        expertise_bonus=settings.composite_expertise_bonus,
    )


class AllocationService:
    """Reads the roster, runs the matching pass and replaces stored results."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._run_lock = RLock()

    def run_bulk_allocation(
        self,
        *,
        policy: Optional[str | AllocationPolicy] = None,
    ) -> AllocationOutcome:
        config = build_allocation_config(self._settings, policy)
        with self._run_lock:
            students = self._repository.list_students()
            professors = self._repository.list_professors()
            outcome = run_allocation(students, professors, config=config)
            self._repository.replace_allocations(outcome.assignments)

        logger.info(
            (
                "Allocation completed | policy=%s | students=%s | professors=%s | "
                "total_capacity=%s | assigned=%s | unassigned=%s"
            ),
            outcome.policy,
            len(students),
            len(professors),
            outcome.total_capacity,
            len(outcome.assignments),
            len(outcome.unassigned_rolls),
        )
        if outcome.duplicate_professor_keys:
            logger.warning(
                "Professor names collided after normalization | keys=%s",
                outcome.duplicate_professor_keys,
            )
        return outcome

    def list_allocations(self) -> list[Assignment]:
        return self._repository.list_allocations()
