from typing import Optional

from fastapi import status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.classes import service as class_service
from app.api.v1.users.schemas import UserResponse
from app.core.admission import EnrollmentAdmission
from app.core.exceptions import ServiceError
from app.core.models import Enrollment, SchoolClass, User
from app.core.pagination import PageParams, fetch_page
from app.core.schemas import PaginatedResponse

from .schemas import EnrollmentClass, EnrollmentCreated, EnrollmentJoin, EnrollmentResponse


def _to_response(
    e: Enrollment,
    student: Optional[User] = None,
    school_class: Optional[SchoolClass] = None,
) -> EnrollmentResponse:
    return EnrollmentResponse(
        id=e.id,
        student_id=e.student_id,
        class_id=e.class_id,
        created_at=e.created_at,
        student=UserResponse.model_validate(student) if student else None,
        school_class=EnrollmentClass.model_validate(school_class) if school_class else None,
    )


def _with_student_and_class():
    return (
        select(Enrollment, User, SchoolClass)
        .outerjoin(User, Enrollment.student_id == User.id)
        .outerjoin(SchoolClass, Enrollment.class_id == SchoolClass.id)
    )


def _class_id_filter(raw: Optional[str]) -> Optional[int]:
    """A non-numeric or zero ``class_id`` query value means no filter."""
    if raw is None:
        return None
    try:
        value = int(raw.strip())
    except ValueError:
        return None
    return value or None


async def list_enrollments(
    db: AsyncSession,
    params: PageParams,
    class_id: Optional[str] = None,
    student_id: Optional[str] = None,
) -> PaginatedResponse[EnrollmentResponse]:
    stmt = _with_student_and_class()
    class_filter = _class_id_filter(class_id)
    if class_filter is not None:
        stmt = stmt.where(Enrollment.class_id == class_filter)
    if student_id:
        stmt = stmt.where(Enrollment.student_id == student_id)
    stmt = stmt.order_by(Enrollment.created_at.desc(), Enrollment.id.desc())
    rows, meta = await fetch_page(db, stmt, params)
    return PaginatedResponse[EnrollmentResponse](
        data=[_to_response(e, s, c) for e, s, c in rows],
        pagination=meta,
    )


async def get_enrollment(db: AsyncSession, enrollment_id: int) -> Optional[EnrollmentResponse]:
    result = await db.execute(_with_student_and_class().where(Enrollment.id == enrollment_id))
    row = result.first()
    return _to_response(*row) if row else None


async def create_enrollment(
    admission: EnrollmentAdmission,
    student_id: str,
    class_id: int,
) -> EnrollmentCreated:
    enrollment_id = await admission.admit(student_id.strip(), class_id)
    return EnrollmentCreated(id=enrollment_id)


async def join_by_invite_code(
    db: AsyncSession,
    admission: EnrollmentAdmission,
    payload: EnrollmentJoin,
) -> EnrollmentCreated:
    class_id = await class_service.get_class_id_by_invite_code(db, payload.invite_code)
    if class_id is None:
        raise ServiceError("No class found for this invite code", status.HTTP_404_NOT_FOUND)
    return await create_enrollment(admission, payload.student_id, class_id)


async def delete_enrollment(db: AsyncSession, enrollment_id: int) -> bool:
    result = await db.execute(delete(Enrollment).where(Enrollment.id == enrollment_id))
    await db.commit()
    return bool(result.rowcount)
