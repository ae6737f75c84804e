import logging
from typing import Optional

from fastapi import status
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.departments.schemas import DepartmentResponse
from app.api.v1.subjects import service as subject_service
from app.api.v1.users.schemas import UserResponse
from app.core.invite_codes import InviteCodeAllocator
from app.core.exceptions import ServiceError
from app.core.models import Department, Enrollment, SchoolClass, Subject, User
from app.core.pagination import PageParams, contains_pattern, fetch_page
from app.core.schemas import PaginatedResponse

from .schemas import ClassCreate, ClassCreated, ClassResponse, ClassSubject, ClassUpdate

logger = logging.getLogger(__name__)

INVALID_SUBJECT_MESSAGE = "Invalid subject ID"
INVALID_TEACHER_MESSAGE = "Invalid teacher ID"


def _class_to_response(
    c: SchoolClass,
    subject: Optional[Subject] = None,
    teacher: Optional[User] = None,
    department: Optional[Department] = None,
) -> ClassResponse:
    return ClassResponse(
        id=c.id,
        name=c.name,
        description=c.description,
        subject_id=c.subject_id,
        teacher_id=c.teacher_id,
        invite_code=c.invite_code,
        capacity=c.capacity,
        status=c.status,
        banner_url=c.banner_url,
        banner_cld_pub_id=c.banner_cld_pub_id,
        schedules=c.schedules or [],
        created_at=c.created_at,
        updated_at=c.updated_at,
        subject=ClassSubject.model_validate(subject) if subject else None,
        teacher=UserResponse.model_validate(teacher) if teacher else None,
        department=DepartmentResponse.model_validate(department) if department else None,
    )


async def _teacher_exists(db: AsyncSession, teacher_id: str) -> bool:
    result = await db.execute(select(User.id).where(User.id == teacher_id))
    return result.scalar_one_or_none() is not None


async def list_classes(
    db: AsyncSession,
    params: PageParams,
    search: Optional[str] = None,
    subject: Optional[str] = None,
    teacher: Optional[str] = None,
) -> PaginatedResponse[ClassResponse]:
    """
    ``search`` matches class name or invite code; ``subject`` and ``teacher``
    match the joined subject name and teacher name. All given filters must hold.
    """
    stmt = (
        select(SchoolClass, Subject, User)
        .outerjoin(Subject, SchoolClass.subject_id == Subject.id)
        .outerjoin(User, SchoolClass.teacher_id == User.id)
    )
    if search:
        pattern = contains_pattern(search)
        stmt = stmt.where(or_(SchoolClass.name.ilike(pattern), SchoolClass.invite_code.ilike(pattern)))
    if subject:
        stmt = stmt.where(Subject.name.ilike(contains_pattern(subject)))
    if teacher:
        stmt = stmt.where(User.name.ilike(contains_pattern(teacher)))
    stmt = stmt.order_by(SchoolClass.created_at.desc(), SchoolClass.id.desc())
    rows, meta = await fetch_page(db, stmt, params)
    return PaginatedResponse[ClassResponse](
        data=[_class_to_response(c, s, t) for c, s, t in rows],
        pagination=meta,
    )


async def get_class(db: AsyncSession, class_id: int) -> Optional[ClassResponse]:
    result = await db.execute(
        select(SchoolClass, Subject, Department, User)
        .outerjoin(Subject, SchoolClass.subject_id == Subject.id)
        .outerjoin(Department, Subject.department_id == Department.id)
        .outerjoin(User, SchoolClass.teacher_id == User.id)
        .where(SchoolClass.id == class_id)
    )
    row = result.first()
    if not row:
        return None
    c, subject, department, teacher = row
    return _class_to_response(c, subject, teacher, department)


async def get_class_id_by_invite_code(db: AsyncSession, code: str) -> Optional[int]:
    result = await db.execute(select(SchoolClass.id).where(SchoolClass.invite_code == code.strip()))
    return result.scalar_one_or_none()


async def create_class(
    db: AsyncSession,
    allocator: InviteCodeAllocator,
    payload: ClassCreate,
) -> ClassCreated:
    """
    Create a class with a freshly allocated invite code.

    Raises AllocationExhausted (from the allocator) when no free code was found
    within the attempt limit; nothing is written in that case.
    """
    if not await subject_service.subject_exists(db, payload.subject_id):
        raise ServiceError(INVALID_SUBJECT_MESSAGE, status.HTTP_400_BAD_REQUEST)
    if not await _teacher_exists(db, payload.teacher_id):
        raise ServiceError(INVALID_TEACHER_MESSAGE, status.HTTP_400_BAD_REQUEST)

    invite_code = await allocator.allocate_unique()
    try:
        obj = SchoolClass(
            name=payload.name.strip(),
            description=payload.description,
            subject_id=payload.subject_id,
            teacher_id=payload.teacher_id,
            capacity=payload.capacity,
            status=payload.status.value,
            banner_url=payload.banner_url,
            banner_cld_pub_id=payload.banner_cld_pub_id,
            schedules=payload.schedules,
            invite_code=invite_code,
        )
        db.add(obj)
        await db.commit()
        await db.refresh(obj)
    except IntegrityError:
        await db.rollback()
        # Another class took the same code between the uniqueness check and this insert
        raise ServiceError("Invite code collision, please retry", status.HTTP_409_CONFLICT)
    logger.info("Created class %s with invite code %s", obj.id, obj.invite_code)
    return ClassCreated(id=obj.id, invite_code=obj.invite_code)


async def update_class(
    db: AsyncSession,
    class_id: int,
    payload: ClassUpdate,
) -> Optional[ClassResponse]:
    result = await db.execute(select(SchoolClass).where(SchoolClass.id == class_id))
    obj = result.scalar_one_or_none()
    if not obj:
        return None
    if payload.subject_id is not None:
        if not await subject_service.subject_exists(db, payload.subject_id):
            raise ServiceError(INVALID_SUBJECT_MESSAGE, status.HTTP_400_BAD_REQUEST)
        obj.subject_id = payload.subject_id
    if payload.teacher_id is not None:
        if not await _teacher_exists(db, payload.teacher_id):
            raise ServiceError(INVALID_TEACHER_MESSAGE, status.HTTP_400_BAD_REQUEST)
        obj.teacher_id = payload.teacher_id
    if payload.name is not None:
        obj.name = payload.name.strip()
    if payload.description is not None:
        obj.description = payload.description
    if payload.capacity is not None:
        obj.capacity = payload.capacity
    if payload.status is not None:
        obj.status = payload.status.value
    if payload.banner_url is not None:
        obj.banner_url = payload.banner_url
    if payload.banner_cld_pub_id is not None:
        obj.banner_cld_pub_id = payload.banner_cld_pub_id
    if payload.schedules is not None:
        obj.schedules = payload.schedules
    await db.commit()
    return await get_class(db, class_id)


async def delete_class(db: AsyncSession, class_id: int) -> bool:
    used = await db.execute(
        select(func.count(Enrollment.id)).where(Enrollment.class_id == class_id)
    )
    enrollment_count = used.scalar_one() or 0
    if enrollment_count > 0:
        raise ServiceError(
            "Cannot delete class with enrolled students. "
            f"This class has {enrollment_count} enrollment(s). Please remove them first.",
            status.HTTP_409_CONFLICT,
        )
    result = await db.execute(delete(SchoolClass).where(SchoolClass.id == class_id))
    await db.commit()
    return bool(result.rowcount)
