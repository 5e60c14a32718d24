from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

from backend.domain.models import Assignment, Professor, Student
from backend.repository.data_repository import DataRepository
from backend.utils.config import get_settings


def _build_repository(tmp_path, filename: str) -> DataRepository:
    settings = replace(get_settings(), database_path=tmp_path / filename)
    repository = DataRepository(settings)
    repository.initialize_database()
    return repository


def _assignment(roll: str, score: int, rank: int = 1) -> Assignment:
    return Assignment(
        student_name=f"Student {roll}",
        student_email=None,
        student_roll=roll,
        student_cgpa=score / 10,
        student_domain="",
        professor_name="Dr. Smith",
        preference_rank=rank,
        allocation_score=score,
        created_at=datetime(2026, 3, 1, tzinfo=timezone.utc),
    )


def test_upsert_student_updates_by_email(tmp_path):
    repository = _build_repository(tmp_path, "students.db")

    created, was_created = repository.upsert_student(
        Student(roll="S1", name="Asha", email="asha@example.edu", cgpa=8.1,
                preferences=("Dr. Jones", "Dr. Smith"))
    )
    updated, was_created_again = repository.upsert_student(
        Student(roll="S1", name="Asha K", email="asha@example.edu", cgpa=8.4,
                preferences=("Dr. Smith",))
    )

    assert was_created is True
    assert was_created_again is False
    assert created.preferences == ("Dr. Jones", "Dr. Smith")
    assert updated.name == "Asha K"
    assert updated.preferences == ("Dr. Smith",)
    assert updated.created_at == created.created_at
    assert repository.count_students() == 1


def test_students_without_email_are_always_inserted(tmp_path):
    repository = _build_repository(tmp_path, "no_email.db")

    repository.upsert_student(Student(roll="S1", name="One"))
    repository.upsert_student(Student(roll="S1", name="One"))

    assert repository.count_students() == 2
    assert [student.name for student in repository.list_students()] == ["One", "One"]


def test_list_students_keeps_insertion_order(tmp_path):
    repository = _build_repository(tmp_path, "order.db")
    for roll, cgpa in [("A", 7.0), ("B", 9.0), ("C", None)]:
        repository.upsert_student(Student(roll=roll, name=roll, cgpa=cgpa))

    students = repository.list_students()

    assert [student.roll for student in students] == ["A", "B", "C"]
    assert students[2].cgpa is None
    assert [student.roll for student in repository.list_students_recent_first()] == ["C", "B", "A"]


def test_upsert_professor_updates_by_email(tmp_path):
    repository = _build_repository(tmp_path, "professors.db")

    repository.upsert_professor(
        Professor(name="Dr. Smith", capacity=1, email="smith@example.edu", expertise="ML")
    )
    stored, created = repository.upsert_professor(
        Professor(name="Dr. Smith", capacity=3, email="smith@example.edu", expertise="ML")
    )

    assert created is False
    assert stored.capacity == 3
    assert repository.count_professors() == 1


def test_replace_allocations_swaps_the_whole_set(tmp_path):
    repository = _build_repository(tmp_path, "allocations.db")

    repository.replace_allocations([_assignment("S1", 80), _assignment("S2", 95)])
    repository.replace_allocations([_assignment("S3", 70, rank=2), _assignment("S4", 88)])

    stored = repository.list_allocations()
    assert [item.student_roll for item in stored] == ["S4", "S3"]
    assert repository.count_allocations() == 2
    assert repository.count_first_choice_allocations() == 1
    assert stored[0].created_at == datetime(2026, 3, 1, tzinfo=timezone.utc)


def test_replace_allocations_with_empty_list_clears_results(tmp_path):
    repository = _build_repository(tmp_path, "clear.db")
    repository.replace_allocations([_assignment("S1", 80)])

    assert repository.replace_allocations([]) == 0
    assert repository.list_allocations() == []


def test_reset_all_and_demo_seed(tmp_path):
    repository = _build_repository(tmp_path, "seed.db")

    seeded = repository.seed_demo_data_if_empty()
    assert seeded == 7
    assert repository.count_professors() == 4
    assert repository.seed_demo_data_if_empty() == 0

    repository.replace_allocations([_assignment("S1", 80)])
    repository.reset_all()

    assert repository.count_students() == 0
    assert repository.count_professors() == 0
    assert repository.count_allocations() == 0
