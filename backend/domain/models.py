"""Domain models for student-to-supervisor allocation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


FALLBACK_PREFERENCE_RANK = 0


@dataclass(frozen=True)
class Student:
    roll: str
    name: str
    email: Optional[str] = None
    cgpa: Optional[float] = None
    domain: str = ""
    preferences: tuple[str, ...] = ()
    project_title: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Professor:
    name: str
    capacity: int
    department: str = ""
    expertise: str = ""
    email: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Assignment:
    student_name: str
    student_email: Optional[str]
    student_roll: str
    student_cgpa: Optional[float]
    student_domain: str
    professor_name: str
    preference_rank: int
    allocation_score: int
    created_at: datetime

    @property
    def is_fallback(self) -> bool:
        return self.preference_rank == FALLBACK_PREFERENCE_RANK


@dataclass(frozen=True)
class AllocationOutcome:
    assignments: list[Assignment]
    unassigned_rolls: list[str]
    total_capacity: int
    policy: str
    duplicate_professor_keys: list[str] = field(default_factory=list)
