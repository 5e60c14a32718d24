#!/usr/bin/env python3
"""Validate local allocation service environment readiness."""

from __future__ import annotations

import importlib
import shutil
import sys
import tempfile
from dataclasses import replace
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.repository.data_repository import DataRepository
from backend.services.matching_service import AllocationService
from backend.utils.config import get_settings

SEPARATOR_LINE = "=" * 44


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="allocation-env-")

    # CHECK 1 — Python version >= 3.10
    if sys.version_info >= (3, 10):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.10",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2 — Required packages importable
    package_specs = ["fastapi", "uvicorn", "pydantic", "numpy", "pandas", "httpx", "pytest"]
    import_errors: list[str] = []
    for module_name in package_specs:
        try:
            importlib.import_module(module_name)
        except ImportError as exc:
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    try:
        validation_settings = replace(
            get_settings(),
            database_path=Path(temp_dir) / "allocation_validation.db",
        )
        repository = DataRepository(validation_settings)

        # CHECK 3 — Database initialization
        try:
            repository.initialize_database()
            ok, line = _print_result("Database initialization", True)
        except Exception as exc:
            ok, line = _print_result("Database initialization", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 4 — Demo roster seeding
        try:
            seeded = repository.seed_demo_data_if_empty()
            if seeded == 0:
                raise RuntimeError("expected demo students to be inserted")
            ok, line = _print_result("Demo roster seeding", True, f": {seeded} students")
        except Exception as exc:
            ok, line = _print_result("Demo roster seeding", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 5 — Allocation run within capacity
        try:
            outcome = AllocationService(
                repository=repository,
                settings=validation_settings,
            ).run_bulk_allocation()
            if len(outcome.assignments) > outcome.total_capacity:
                raise RuntimeError("assignments exceed total capacity")
            if repository.count_allocations() != len(outcome.assignments):
                raise RuntimeError("stored allocation count does not match run output")
            ok, line = _print_result(
                "Allocation run",
                True,
                f": {len(outcome.assignments)} assigned, "
                f"{len(outcome.unassigned_rolls)} unassigned",
            )
        except Exception as exc:
            ok, line = _print_result("Allocation run", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" Allocation Service Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
