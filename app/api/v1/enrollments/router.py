from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.admission import EnrollmentAdmission
from app.core.dependencies import get_admission
from app.core.exceptions import DomainError, ServiceError
from app.core.pagination import PageParams, page_params
from app.core.schemas import PaginatedResponse
from app.db.session import get_db

from .schemas import EnrollmentCreate, EnrollmentCreated, EnrollmentJoin, EnrollmentResponse
from . import service

router = APIRouter(prefix="/api/v1/enrollments", tags=["enrollments"])


@router.get("", response_model=PaginatedResponse[EnrollmentResponse])
async def list_enrollments(
    class_id: Optional[str] = Query(None, description="Exact class id; ignored when not a number"),
    student_id: Optional[str] = Query(None),
    params: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
) -> PaginatedResponse[EnrollmentResponse]:
    return await service.list_enrollments(db, params, class_id=class_id, student_id=student_id)


@router.post("", response_model=EnrollmentCreated, status_code=status.HTTP_201_CREATED)
async def create_enrollment(
    payload: EnrollmentCreate,
    admission: EnrollmentAdmission = Depends(get_admission),
) -> EnrollmentCreated:
    """
    Admit a student to a class.

    Failures return ``{"kind", "message"}`` in ``detail``; kinds are InvalidClass,
    ClassNotOpen, CapacityExceeded (with ``capacity``), InvalidStudent,
    DuplicateEnrollment and StorageUnavailable.
    """
    try:
        return await service.create_enrollment(admission, payload.student_id, payload.class_id)
    except DomainError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post("/join", response_model=EnrollmentCreated, status_code=status.HTTP_201_CREATED)
async def join_class(
    payload: EnrollmentJoin,
    db: AsyncSession = Depends(get_db),
    admission: EnrollmentAdmission = Depends(get_admission),
) -> EnrollmentCreated:
    try:
        return await service.join_by_invite_code(db, admission, payload)
    except DomainError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{enrollment_id}", response_model=EnrollmentResponse)
async def get_enrollment(
    enrollment_id: int,
    db: AsyncSession = Depends(get_db),
) -> EnrollmentResponse:
    enrollment = await service.get_enrollment(db, enrollment_id)
    if not enrollment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Enrollment not found")
    return enrollment


@router.delete("/{enrollment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_enrollment(
    enrollment_id: int,
    db: AsyncSession = Depends(get_db),
) -> None:
    deleted = await service.delete_enrollment(db, enrollment_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Enrollment not found")
