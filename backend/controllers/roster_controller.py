"""Controller layer for student and professor registration."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from backend.controllers.dependencies import get_roster_service
from backend.domain.models import Professor, Student
from backend.repository.data_repository import RepositoryError
from backend.services.roster_service import RosterService, RosterValidationError
from backend.utils.config import get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)
settings = get_settings()

router = APIRouter(tags=["roster"])


class StudentRequest(BaseModel):
    roll: str = Field(default="")
    name: str = Field(min_length=1)
    email: Optional[str] = None
    cgpa: Optional[float] = Field(default=None, ge=0.0, le=settings.cgpa_max)
    project_title: Optional[str] = Field(default=None, alias="projectTitle")
    domain: str = ""
    preferences: list[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True}

    @field_validator("preferences")
    @classmethod
    def validate_preferences(cls, value: list[str]) -> list[str]:
        return [item for item in value if item.strip()]


class StudentResponse(BaseModel):
    roll: str
    name: str
    email: Optional[str] = None
    cgpa: Optional[float] = None
    project_title: Optional[str] = None
    domain: str
    preferences: list[str]
    created_at: Optional[datetime] = None
    message: Optional[str] = None


class ProfessorRequest(BaseModel):
    name: str = Field(min_length=1)
    email: Optional[str] = None
    department: str = ""
    expertise: str = ""
    capacity: int = Field(default=0, ge=0)


class ProfessorResponse(BaseModel):
    name: str
    email: Optional[str] = None
    department: str
    expertise: str
    capacity: int = Field(ge=0)
    created_at: Optional[datetime] = None
    message: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime


def _student_response(student: Student, message: Optional[str] = None) -> StudentResponse:
    return StudentResponse(
        roll=student.roll,
        name=student.name,
        email=student.email,
        cgpa=student.cgpa,
        project_title=student.project_title,
        domain=student.domain,
        preferences=list(student.preferences),
        created_at=student.created_at,
        message=message,
    )


def _professor_response(professor: Professor, message: Optional[str] = None) -> ProfessorResponse:
    return ProfessorResponse(
        name=professor.name,
        email=professor.email,
        department=professor.department,
        expertise=professor.expertise,
        capacity=professor.capacity,
        created_at=professor.created_at,
        message=message,
    )


def _bad_request(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.post("/api/students", response_model=StudentResponse, status_code=status.HTTP_200_OK)
async def save_student(
    payload: StudentRequest,
    service: RosterService = Depends(get_roster_service),
) -> StudentResponse:
    """Create a student, or update the one registered under the same email."""
    try:
        stored, created = service.register_student(
            Student(
                roll=payload.roll,
                name=payload.name,
                email=payload.email,
                cgpa=payload.cgpa,
                domain=payload.domain,
                preferences=tuple(payload.preferences),
                project_title=payload.project_title,
            )
        )
        return _student_response(stored, "Student created" if created else "Student updated")
    except (RosterValidationError, RepositoryError) as exc:
        raise _bad_request(exc) from exc


@router.get("/api/students", response_model=list[StudentResponse], status_code=status.HTTP_200_OK)
async def list_students(
    service: RosterService = Depends(get_roster_service),
) -> list[StudentResponse]:
    return [_student_response(student) for student in service.list_students()]


@router.post("/api/professors", response_model=ProfessorResponse, status_code=status.HTTP_200_OK)
async def save_professor(
    payload: ProfessorRequest,
    service: RosterService = Depends(get_roster_service),
) -> ProfessorResponse:
    """Create a professor, or update the one registered under the same email."""
    try:
        stored, created = service.register_professor(
            Professor(
                name=payload.name,
                capacity=payload.capacity,
                department=payload.department,
                expertise=payload.expertise,
                email=payload.email,
            )
        )
        return _professor_response(
            stored,
            "Professor created" if created else "Professor updated",
        )
    except (RosterValidationError, RepositoryError) as exc:
        raise _bad_request(exc) from exc


@router.get(
    "/api/professors",
    response_model=list[ProfessorResponse],
    status_code=status.HTTP_200_OK,
)
async def list_professors(
    service: RosterService = Depends(get_roster_service),
) -> list[ProfessorResponse]:
    return [_professor_response(professor) for professor in service.list_professors()]


@router.post("/api/reset", response_model=MessageResponse, status_code=status.HTTP_200_OK)
async def reset_system(
    service: RosterService = Depends(get_roster_service),
) -> MessageResponse:
    try:
        service.reset_system()
    except RepositoryError as exc:
        raise _bad_request(exc) from exc
    return MessageResponse(message="System reset successfully")


@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health() -> HealthResponse:
    return HealthResponse(status="Server running", timestamp=datetime.now(timezone.utc))
