"""HTTP controller layer for allocation runs and reporting."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from backend.controllers.dependencies import get_allocation_service, get_stats_service
from backend.domain.constraints import AllocationPolicy
from backend.domain.models import Assignment
from backend.repository.data_repository import RepositoryError
from backend.services.matching_service import AllocationService, InputError
from backend.services.stats_service import AllocationStatsService
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["allocation"])


class BulkAllocationRequest(BaseModel):
    """Optional per-run policy override; omitted means the configured policy."""

    policy: AllocationPolicy | None = None


class BulkAllocationResponse(BaseModel):
    count: int = Field(ge=0)
    message: str
    policy: AllocationPolicy
    total_capacity: int = Field(ge=0)
    unassigned_rolls: list[str]
    duplicate_professor_keys: list[str]


class AllocationResponse(BaseModel):
    student_name: str
    student_email: str | None = None
    student_roll: str
    student_cgpa: float | None = None
    student_domain: str
    professor_name: str
    preference_rank: int = Field(ge=0)
    allocation_score: int
    created_at: datetime


class StatsResponse(BaseModel):
    total_students: int = Field(ge=0)
    total_professors: int = Field(ge=0)
    allocation_count: int = Field(ge=0)
    first_choice: int = Field(ge=0)


class ProfessorLoadResponse(BaseModel):
    professor_name: str
    department: str
    capacity: int = Field(ge=0)
    assigned: int = Field(ge=0)
    free_seats: int = Field(ge=0)
    fill_rate: float = Field(ge=0.0)
    mean_assigned_cgpa: float | None = None


def _to_response(item: Assignment) -> AllocationResponse:
    return AllocationResponse(
        student_name=item.student_name,
        student_email=item.student_email,
        student_roll=item.student_roll,
        student_cgpa=item.student_cgpa,
        student_domain=item.student_domain,
        professor_name=item.professor_name,
        preference_rank=item.preference_rank,
        allocation_score=item.allocation_score,
        created_at=item.created_at,
    )


@router.post(
    "/allocations/bulk",
    response_model=BulkAllocationResponse,
    status_code=status.HTTP_200_OK,
)
async def run_bulk_allocation(
    payload: BulkAllocationRequest | None = None,
    service: AllocationService = Depends(get_allocation_service),
) -> BulkAllocationResponse:
    """Recompute every allocation and replace the stored set."""
    try:
        outcome = service.run_bulk_allocation(
            policy=payload.policy if payload is not None else None,
        )
        return BulkAllocationResponse(
            count=len(outcome.assignments),
            message="Smart allocations completed",
            policy=AllocationPolicy(outcome.policy),
            total_capacity=outcome.total_capacity,
            unassigned_rolls=outcome.unassigned_rolls,
            duplicate_professor_keys=outcome.duplicate_professor_keys,
        )
    except InputError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except RepositoryError as exc:
        logger.exception("Allocation storage failure")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected allocation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to run allocation",
        ) from exc


@router.get(
    "/allocations",
    response_model=list[AllocationResponse],
    status_code=status.HTTP_200_OK,
)
async def list_allocations(
    service: AllocationService = Depends(get_allocation_service),
) -> list[AllocationResponse]:
    return [_to_response(item) for item in service.list_allocations()]


@router.get("/stats", response_model=StatsResponse, status_code=status.HTTP_200_OK)
async def get_stats(
    service: AllocationStatsService = Depends(get_stats_service),
) -> StatsResponse:
    return StatsResponse(**service.get_stats())


@router.get(
    "/stats/professors",
    response_model=list[ProfessorLoadResponse],
    status_code=status.HTTP_200_OK,
)
async def get_professor_load(
    service: AllocationStatsService = Depends(get_stats_service),
) -> list[ProfessorLoadResponse]:
    return [ProfessorLoadResponse(**row) for row in service.professor_load_report()]
