"""Student and professor registration."""

from __future__ import annotations

from typing import Iterable, Optional

from backend.domain.models import Professor, Student
from backend.repository.data_repository import DataRepository
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class RosterValidationError(Exception):
    """Raised when a student or professor record is invalid."""


def _clean_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def _clean_preferences(preferences: Optional[Iterable[str]]) -> tuple[str, ...]:
    # Order is significant; only blank entries are dropped.
    return tuple(item for item in (preferences or ()) if item and item.strip())


class RosterService:
    """Validates roster records and stores them with upsert-by-email semantics."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def register_student(self, student: Student) -> tuple[Student, bool]:
        if not student.name.strip():
            raise RosterValidationError("student name must be non-empty")
        if student.cgpa is not None and not 0.0 <= student.cgpa <= self._settings.cgpa_max:
            raise RosterValidationError(
                f"cgpa must be between 0 and {self._settings.cgpa_max:g}"
            )
        cleaned = Student(
            roll=student.roll.strip(),
            name=student.name.strip(),
            email=_clean_optional(student.email),
            cgpa=student.cgpa,
            domain=student.domain.strip(),
            preferences=_clean_preferences(student.preferences),
            project_title=_clean_optional(student.project_title),
            created_at=student.created_at,
        )
        stored, created = self._repository.upsert_student(cleaned)
        logger.info(
            "Student %s | roll=%s | preferences=%s",
            "created" if created else "updated",
            stored.roll,
            len(stored.preferences),
        )
        return stored, created

    def register_professor(self, professor: Professor) -> tuple[Professor, bool]:
        if not professor.name.strip():
            raise RosterValidationError("professor name must be non-empty")
        if professor.capacity < 0:
            raise RosterValidationError("capacity must be >= 0")
        cleaned = Professor(
            name=professor.name,
            capacity=int(professor.capacity),
            department=professor.department.strip(),
            expertise=professor.expertise.strip(),
            email=_clean_optional(professor.email),
            created_at=professor.created_at,
        )
        stored, created = self._repository.upsert_professor(cleaned)
        logger.info(
            "Professor %s | name=%s | capacity=%s",
            "created" if created else "updated",
            stored.name,
            stored.capacity,
        )
        return stored, created

    def list_students(self) -> list[Student]:
        return self._repository.list_students_recent_first()

    def list_professors(self) -> list[Professor]:
        return self._repository.list_professors()

    def reset_system(self) -> None:
        self._repository.reset_all()
