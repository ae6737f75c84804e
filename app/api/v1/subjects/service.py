from typing import Optional

from fastapi import status
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.departments import service as department_service
from app.api.v1.departments.schemas import DepartmentResponse
from app.core.exceptions import ServiceError
from app.core.models import Department, SchoolClass, Subject
from app.core.pagination import PageParams, contains_pattern, fetch_page
from app.core.schemas import PaginatedResponse

from .schemas import SubjectCreate, SubjectCreated, SubjectResponse, SubjectUpdate

DUPLICATE_CODE_MESSAGE = "Subject code already exists"
INVALID_DEPARTMENT_MESSAGE = "Invalid department ID"


def _to_response(s: Subject, dept: Optional[Department] = None) -> SubjectResponse:
    return SubjectResponse(
        id=s.id,
        department_id=s.department_id,
        code=s.code,
        name=s.name,
        description=s.description,
        created_at=s.created_at,
        updated_at=s.updated_at,
        department=DepartmentResponse.model_validate(dept) if dept else None,
    )


def _with_department():
    return select(Subject, Department).outerjoin(Department, Subject.department_id == Department.id)


async def _code_owner(db: AsyncSession, code: str) -> Optional[int]:
    result = await db.execute(select(Subject.id).where(Subject.code == code))
    return result.scalar_one_or_none()


async def list_subjects(
    db: AsyncSession,
    params: PageParams,
    search: Optional[str] = None,
    department: Optional[str] = None,
) -> PaginatedResponse[SubjectResponse]:
    """Filters are ANDed; ``department`` matches on the department's name."""
    stmt = _with_department()
    if search:
        pattern = contains_pattern(search)
        stmt = stmt.where(or_(Subject.name.ilike(pattern), Subject.code.ilike(pattern)))
    if department:
        stmt = stmt.where(Department.name.ilike(contains_pattern(department)))
    stmt = stmt.order_by(Subject.created_at.desc(), Subject.id.desc())
    rows, meta = await fetch_page(db, stmt, params)
    return PaginatedResponse[SubjectResponse](
        data=[_to_response(s, d) for s, d in rows],
        pagination=meta,
    )


async def get_subject(db: AsyncSession, subject_id: int) -> Optional[SubjectResponse]:
    result = await db.execute(_with_department().where(Subject.id == subject_id))
    row = result.first()
    return _to_response(row[0], row[1]) if row else None


async def subject_exists(db: AsyncSession, subject_id: int) -> bool:
    result = await db.execute(select(Subject.id).where(Subject.id == subject_id))
    return result.scalar_one_or_none() is not None


async def create_subject(db: AsyncSession, payload: SubjectCreate) -> SubjectCreated:
    code = payload.code.strip()
    name = payload.name.strip()
    if not code or not name:
        raise ServiceError("Code, name, and department_id are required", status.HTTP_400_BAD_REQUEST)
    if await _code_owner(db, code) is not None:
        raise ServiceError(DUPLICATE_CODE_MESSAGE, status.HTTP_400_BAD_REQUEST)
    if not await department_service.department_exists(db, payload.department_id):
        raise ServiceError(INVALID_DEPARTMENT_MESSAGE, status.HTTP_400_BAD_REQUEST)
    try:
        obj = Subject(
            code=code,
            name=name,
            description=payload.description.strip() if payload.description else None,
            department_id=payload.department_id,
        )
        db.add(obj)
        await db.commit()
        await db.refresh(obj)
        return SubjectCreated(id=obj.id)
    except IntegrityError as e:
        await db.rollback()
        err_msg = str(e.orig) if getattr(e, "orig", None) else str(e)
        # FK violation: department removed between the check and the insert
        if "foreign key" in err_msg.lower():
            raise ServiceError(INVALID_DEPARTMENT_MESSAGE, status.HTTP_400_BAD_REQUEST)
        raise ServiceError(DUPLICATE_CODE_MESSAGE, status.HTTP_409_CONFLICT)


async def update_subject(
    db: AsyncSession,
    subject_id: int,
    payload: SubjectUpdate,
) -> Optional[SubjectResponse]:
    result = await db.execute(select(Subject).where(Subject.id == subject_id))
    obj = result.scalar_one_or_none()
    if not obj:
        return None
    if payload.code:
        code = payload.code.strip()
        owner = await _code_owner(db, code)
        if owner is not None and owner != subject_id:
            raise ServiceError(DUPLICATE_CODE_MESSAGE, status.HTTP_400_BAD_REQUEST)
        obj.code = code
    if payload.department_id is not None:
        if not await department_service.department_exists(db, payload.department_id):
            raise ServiceError(INVALID_DEPARTMENT_MESSAGE, status.HTTP_400_BAD_REQUEST)
        obj.department_id = payload.department_id
    if payload.name is not None:
        obj.name = payload.name.strip()
    if payload.description is not None:
        obj.description = payload.description.strip() or None
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError(DUPLICATE_CODE_MESSAGE, status.HTTP_409_CONFLICT)
    return await get_subject(db, subject_id)


async def delete_subject(db: AsyncSession, subject_id: int) -> bool:
    used = await db.execute(
        select(func.count(SchoolClass.id)).where(SchoolClass.subject_id == subject_id)
    )
    class_count = used.scalar_one() or 0
    if class_count > 0:
        raise ServiceError(
            "Cannot delete subject with associated classes. "
            f"This subject has {class_count} class(es). Please delete or reassign them first.",
            status.HTTP_409_CONFLICT,
        )
    result = await db.execute(delete(Subject).where(Subject.id == subject_id))
    await db.commit()
    return bool(result.rowcount)
