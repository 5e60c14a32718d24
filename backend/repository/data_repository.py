"""Repository layer responsible for all database access."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from backend.domain.models import Assignment, Professor, Student
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class RepositoryError(RuntimeError):
    """Raised when a storage operation fails."""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(str(value))


def _optional_float(value: object) -> Optional[float]:
    if value is None:
        return None
    return float(value)


class DataRepository:
    """Encapsulates SQLite access so the matching logic stays storage-agnostic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._db_path)
        connection.row_factory = sqlite3.Row
        return connection

    def initialize_database(self) -> None:
        """Create tables before API startup."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Students (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        roll TEXT NOT NULL,
                        name TEXT NOT NULL,
                        email TEXT UNIQUE,
                        cgpa REAL,
                        project_title TEXT,
                        domain TEXT NOT NULL DEFAULT '',
                        preferences TEXT NOT NULL DEFAULT '[]',
                        created_at TEXT NOT NULL
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Professors (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        name TEXT NOT NULL,
                        email TEXT UNIQUE,
                        department TEXT NOT NULL DEFAULT '',
                        expertise TEXT NOT NULL DEFAULT '',
                        capacity INTEGER NOT NULL CHECK (capacity >= 0),
                        created_at TEXT NOT NULL
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Allocations (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        student_name TEXT NOT NULL,
                        student_email TEXT,
                        student_roll TEXT NOT NULL,
                        student_cgpa REAL,
                        student_domain TEXT NOT NULL DEFAULT '',
                        professor_name TEXT NOT NULL,
                        preference_rank INTEGER NOT NULL,
                        allocation_score INTEGER NOT NULL,
                        created_at TEXT NOT NULL
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_allocations_score
                    ON Allocations(allocation_score);
                    """
                )
                conn.commit()
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RepositoryError(f"Database initialization failed: {exc}") from exc

    @staticmethod
    def _row_to_student(row: sqlite3.Row) -> Student:
        return Student(
            roll=str(row["roll"]),
            name=str(row["name"]),
            email=row["email"],
            cgpa=_optional_float(row["cgpa"]),
            domain=str(row["domain"]),
            preferences=tuple(json.loads(row["preferences"] or "[]")),
            project_title=row["project_title"],
            created_at=_parse_timestamp(row["created_at"]),
        )

    @staticmethod
    def _row_to_professor(row: sqlite3.Row) -> Professor:
        return Professor(
            name=str(row["name"]),
            email=row["email"],
            department=str(row["department"]),
            expertise=str(row["expertise"]),
            capacity=int(row["capacity"]),
            created_at=_parse_timestamp(row["created_at"]),
        )

    @staticmethod
    def _row_to_assignment(row: sqlite3.Row) -> Assignment:
        return Assignment(
            student_name=str(row["student_name"]),
            student_email=row["student_email"],
            student_roll=str(row["student_roll"]),
            student_cgpa=_optional_float(row["student_cgpa"]),
            student_domain=str(row["student_domain"]),
            professor_name=str(row["professor_name"]),
            preference_rank=int(row["preference_rank"]),
            allocation_score=int(row["allocation_score"]),
            created_at=_parse_timestamp(row["created_at"]) or _utc_now(),
        )

    def upsert_student(self, student: Student) -> tuple[Student, bool]:
        """Update the student sharing ``email`` or insert a new one.

        Returns the stored record and ``True`` when a row was created.
        """
        values = (
            student.roll,
            student.name,
            student.email,
            student.cgpa,
            student.project_title,
            student.domain,
            json.dumps(list(student.preferences)),
        )
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                existing_id = None
                if student.email:
                    cursor.execute("SELECT id FROM Students WHERE email = ?;", (student.email,))
                    row = cursor.fetchone()
                    existing_id = int(row["id"]) if row is not None else None

                if existing_id is not None:
                    cursor.execute(
                        """
                        UPDATE Students
                        SET roll = ?, name = ?, email = ?, cgpa = ?,
                            project_title = ?, domain = ?, preferences = ?
                        WHERE id = ?;
                        """,
                        (*values, existing_id),
                    )
                    row_id = existing_id
                else:
                    created_at = student.created_at or _utc_now()
                    cursor.execute(
                        """
                        INSERT INTO Students (
                            roll, name, email, cgpa, project_title, domain,
                            preferences, created_at
                        )
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?);
                        """,
                        (*values, created_at.isoformat()),
                    )
                    row_id = int(cursor.lastrowid)
                conn.commit()

                cursor.execute("SELECT * FROM Students WHERE id = ?;", (row_id,))
                return self._row_to_student(cursor.fetchone()), existing_id is None
        except sqlite3.Error as exc:
            raise RepositoryError(f"Saving student failed: {exc}") from exc

    def upsert_professor(self, professor: Professor) -> tuple[Professor, bool]:
        """Update the professor sharing ``email`` or insert a new one."""
        values = (
            professor.name,
            professor.email,
            professor.department,
            professor.expertise,
            professor.capacity,
        )
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                existing_id = None
                if professor.email:
                    cursor.execute(
                        "SELECT id FROM Professors WHERE email = ?;",
                        (professor.email,),
                    )
                    row = cursor.fetchone()
                    existing_id = int(row["id"]) if row is not None else None

                if existing_id is not None:
                    cursor.execute(
                        """
                        UPDATE Professors
                        SET name = ?, email = ?, department = ?, expertise = ?, capacity = ?
                        WHERE id = ?;
                        """,
                        (*values, existing_id),
                    )
                    row_id = existing_id
                else:
                    created_at = professor.created_at or _utc_now()
                    cursor.execute(
                        """
                        INSERT INTO Professors (
                            name, email, department, expertise, capacity, created_at
                        )
                        VALUES (?, ?, ?, ?, ?, ?);
                        """,
                        (*values, created_at.isoformat()),
                    )
                    row_id = int(cursor.lastrowid)
                conn.commit()

                cursor.execute("SELECT * FROM Professors WHERE id = ?;", (row_id,))
                return self._row_to_professor(cursor.fetchone()), existing_id is None
        except sqlite3.Error as exc:
            raise RepositoryError(f"Saving professor failed: {exc}") from exc

    def list_students(self) -> list[Student]:
        """Return students in insertion order, the input order for tie-breaks."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM Students ORDER BY id ASC;")
            return [self._row_to_student(row) for row in cursor.fetchall()]

    def list_students_recent_first(self) -> list[Student]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM Students ORDER BY created_at DESC, id DESC;")
            return [self._row_to_student(row) for row in cursor.fetchall()]

    def list_professors(self) -> list[Professor]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM Professors ORDER BY id ASC;")
            return [self._row_to_professor(row) for row in cursor.fetchall()]

    def replace_allocations(self, assignments: Iterable[Assignment]) -> int:
        """Swap the stored allocation set for ``assignments`` in one transaction."""
        rows = [
            (
                item.student_name,
                item.student_email,
                item.student_roll,
                item.student_cgpa,
                item.student_domain,
                item.professor_name,
                item.preference_rank,
                item.allocation_score,
                item.created_at.isoformat(),
            )
            for item in assignments
        ]
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("DELETE FROM Allocations;")
                cursor.executemany(
                    """
                    INSERT INTO Allocations (
                        student_name,
                        student_email,
                        student_roll,
                        student_cgpa,
                        student_domain,
                        professor_name,
                        preference_rank,
                        allocation_score,
                        created_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
                    """,
                    rows,
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise RepositoryError(f"Replacing allocations failed: {exc}") from exc
        return len(rows)

    def list_allocations(self) -> list[Assignment]:
        """Return stored allocations, highest score first."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM Allocations ORDER BY allocation_score DESC, id ASC;"
            )
            return [self._row_to_assignment(row) for row in cursor.fetchall()]

    def _count(self, table: str, where: str = "") -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT COUNT(*) AS count FROM {table} {where};")
            return int(cursor.fetchone()["count"])

    def count_students(self) -> int:
        return self._count("Students")

    def count_professors(self) -> int:
        return self._count("Professors")

    def count_allocations(self) -> int:
        return self._count("Allocations")

    def count_first_choice_allocations(self) -> int:
        return self._count("Allocations", "WHERE preference_rank = 1")

    def reset_all(self) -> None:
        """Delete every student, professor and allocation."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("DELETE FROM Allocations;")
                cursor.execute("DELETE FROM Students;")
                cursor.execute("DELETE FROM Professors;")
                conn.commit()
            logger.info("All roster and allocation data cleared")
        except sqlite3.Error as exc:
            raise RepositoryError(f"Reset failed: {exc}") from exc

    def seed_demo_data_if_empty(self) -> int:
        """Insert a small demo roster when both roster tables are empty.

        Returns the number of student rows inserted.
        """
        if self.count_students() > 0 or self.count_professors() > 0:
            logger.info("Roster already present; skipping demo seed")
            return 0

        professors = [
            Professor(name="Dr. Smith", department="CSE", expertise="Machine Learning", capacity=2),
            Professor(name="Dr. Jones", department="CSE", expertise="Distributed Systems", capacity=2),
            Professor(name="Dr. Rao", department="ECE", expertise="Signal Processing", capacity=1),
            Professor(name="Dr. Mehta", department="CSE", expertise="Databases", capacity=1),
        ]
        students = [
            Student(roll="CS001", name="Asha", email="asha@example.edu", cgpa=9.4,
                    domain="Machine Learning", preferences=("Dr. Smith", "Dr. Jones")),
            Student(roll="CS002", name="Bilal", email="bilal@example.edu", cgpa=8.7,
                    domain="Distributed Systems", preferences=("Dr. Jones", "Dr. Mehta")),
            Student(roll="CS003", name="Chen", email="chen@example.edu", cgpa=8.7,
                    domain="Signal Processing", preferences=("dr. rao ", "Dr. Smith")),
            Student(roll="CS004", name="Divya", email="divya@example.edu", cgpa=7.9,
                    domain="Databases", preferences=("Dr. Smith", "Dr. Mehta")),
            Student(roll="CS005", name="Emil", email="emil@example.edu", cgpa=7.2,
                    domain="Machine Learning", preferences=("Dr. Smith",)),
            Student(roll="CS006", name="Farah", email="farah@example.edu", cgpa=6.8,
                    domain="Networks", preferences=()),
            Student(roll="CS007", name="Gopal", email="gopal@example.edu", cgpa=6.1,
                    domain="Compilers", preferences=("Dr. Jones",)),
        ]
        for professor in professors:
            self.upsert_professor(professor)
        for student in students:
            self.upsert_student(student)
        logger.info(
            "Demo roster seeded | students=%s | professors=%s",
            len(students),
            len(professors),
        )
        return len(students)
