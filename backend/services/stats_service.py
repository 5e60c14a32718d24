"""Reporting over the stored roster and the latest allocation set."""

from __future__ import annotations

from typing import Any, Optional

import numpy as np
import pandas as pd

from backend.repository.data_repository import DataRepository
from backend.services.matching_service import round_half_up
from backend.utils.config import Settings, get_settings


class AllocationStatsService:
    """Summary counters and per-professor load figures."""

    _LOAD_COLUMNS = [
        "professor_name",
        "department",
        "capacity",
        "assigned",
        "free_seats",
        "fill_rate",
        "mean_assigned_cgpa",
    ]

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def get_stats(self) -> dict[str, int]:
        """Headline counters; ``first_choice`` is a percentage of all students."""
        total_students = self._repository.count_students()
        total_professors = self._repository.count_professors()
        allocation_count = self._repository.count_allocations()
        first_choice_count = self._repository.count_first_choice_allocations()

        first_choice = 0
        if allocation_count > 0 and total_students > 0:
            first_choice = round_half_up(first_choice_count / total_students * 100)

        return {
            "total_students": total_students,
            "total_professors": total_professors,
            "allocation_count": allocation_count,
            "first_choice": first_choice,
        }

    def build_load_frame(self) -> pd.DataFrame:
        professors = self._repository.list_professors()
        if not professors:
            return pd.DataFrame(columns=self._LOAD_COLUMNS)

        frame = pd.DataFrame(
            [
                {
                    "professor_name": professor.name,
                    "department": professor.department,
                    "capacity": int(professor.capacity),
                }
                for professor in professors
            ]
        )
        allocations = pd.DataFrame(
            [
                {
                    "professor_name": item.professor_name,
                    "student_cgpa": item.student_cgpa,
                }
                for item in self._repository.list_allocations()
            ],
            columns=["professor_name", "student_cgpa"],
        )
        if allocations.empty:
            frame["assigned"] = 0
            frame["mean_assigned_cgpa"] = np.nan
        else:
            allocations["student_cgpa"] = pd.to_numeric(
                allocations["student_cgpa"],
                errors="coerce",
            )
            grouped = (
                allocations.groupby("professor_name")
                .agg(
                    assigned=("student_cgpa", "size"),
                    mean_assigned_cgpa=("student_cgpa", "mean"),
                )
                .reset_index()
            )
            frame = frame.merge(grouped, on="professor_name", how="left")
            frame["assigned"] = frame["assigned"].fillna(0).astype(int)
        frame["free_seats"] = (frame["capacity"] - frame["assigned"]).clip(lower=0)
        capacity = frame["capacity"].to_numpy(dtype=float)
        assigned = frame["assigned"].to_numpy(dtype=float)
        frame["fill_rate"] = np.divide(
            assigned,
            capacity,
            out=np.zeros_like(assigned),
            where=capacity > 0,
        )
        return frame[self._LOAD_COLUMNS]

    def professor_load_report(self) -> list[dict[str, Any]]:
        frame = self.build_load_frame()
        rows: list[dict[str, Any]] = []
        for record in frame.to_dict(orient="records"):
            mean_cgpa = record["mean_assigned_cgpa"]
            rows.append(
                {
                    "professor_name": str(record["professor_name"]),
                    "department": str(record["department"]),
                    "capacity": int(record["capacity"]),
                    "assigned": int(record["assigned"]),
                    "free_seats": int(record["free_seats"]),
                    "fill_rate": float(record["fill_rate"]),
                    "mean_assigned_cgpa": (
                        None if mean_cgpa is None or pd.isna(mean_cgpa) else float(mean_cgpa)
                    ),
                }
            )
        return rows
