from typing import Optional

from fastapi import status
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ServiceError
from app.core.models import Department, Subject
from app.core.pagination import PageParams, contains_pattern, fetch_page
from app.core.schemas import PaginatedResponse

from .schemas import (
    DepartmentCreate,
    DepartmentCreated,
    DepartmentResponse,
    DepartmentUpdate,
)

DUPLICATE_CODE_MESSAGE = "Department code already exists"


def _to_response(dept: Department) -> DepartmentResponse:
    return DepartmentResponse(
        id=dept.id,
        code=dept.code,
        name=dept.name,
        description=dept.description,
        created_at=dept.created_at,
        updated_at=dept.updated_at,
    )


async def _code_owner(db: AsyncSession, code: str) -> Optional[int]:
    result = await db.execute(select(Department.id).where(Department.code == code))
    return result.scalar_one_or_none()


async def list_departments(
    db: AsyncSession,
    params: PageParams,
    search: Optional[str] = None,
) -> PaginatedResponse[DepartmentResponse]:
    stmt = select(Department)
    if search:
        pattern = contains_pattern(search)
        stmt = stmt.where(or_(Department.name.ilike(pattern), Department.code.ilike(pattern)))
    stmt = stmt.order_by(Department.created_at.desc(), Department.id.desc())
    rows, meta = await fetch_page(db, stmt, params)
    return PaginatedResponse[DepartmentResponse](
        data=[_to_response(d) for (d,) in rows],
        pagination=meta,
    )


async def get_department(db: AsyncSession, department_id: int) -> Optional[DepartmentResponse]:
    result = await db.execute(select(Department).where(Department.id == department_id))
    dept = result.scalar_one_or_none()
    return _to_response(dept) if dept else None


async def department_exists(db: AsyncSession, department_id: int) -> bool:
    """Used by subject create/update to validate the foreign key before writing."""
    result = await db.execute(select(Department.id).where(Department.id == department_id))
    return result.scalar_one_or_none() is not None


async def create_department(db: AsyncSession, payload: DepartmentCreate) -> DepartmentCreated:
    code = payload.code.strip()
    name = payload.name.strip()
    if not code or not name:
        raise ServiceError("Code and name are required", status.HTTP_400_BAD_REQUEST)
    if await _code_owner(db, code) is not None:
        raise ServiceError(DUPLICATE_CODE_MESSAGE, status.HTTP_400_BAD_REQUEST)
    description = payload.description.strip() if payload.description else None
    try:
        dept = Department(code=code, name=name, description=description)
        db.add(dept)
        await db.commit()
        await db.refresh(dept)
        return DepartmentCreated(id=dept.id)
    except IntegrityError:
        await db.rollback()
        raise ServiceError(DUPLICATE_CODE_MESSAGE, status.HTTP_409_CONFLICT)


async def update_department(
    db: AsyncSession,
    department_id: int,
    payload: DepartmentUpdate,
) -> Optional[DepartmentResponse]:
    result = await db.execute(select(Department).where(Department.id == department_id))
    dept = result.scalar_one_or_none()
    if not dept:
        return None
    if payload.code:
        code = payload.code.strip()
        owner = await _code_owner(db, code)
        if owner is not None and owner != department_id:
            raise ServiceError(DUPLICATE_CODE_MESSAGE, status.HTTP_400_BAD_REQUEST)
        dept.code = code
    if payload.name is not None:
        dept.name = payload.name.strip()
    if payload.description is not None:
        dept.description = payload.description.strip() or None
    try:
        await db.commit()
        await db.refresh(dept)
        return _to_response(dept)
    except IntegrityError:
        await db.rollback()
        raise ServiceError(DUPLICATE_CODE_MESSAGE, status.HTTP_409_CONFLICT)


async def delete_department(db: AsyncSession, department_id: int) -> bool:
    used = await db.execute(
        select(func.count(Subject.id)).where(Subject.department_id == department_id)
    )
    subject_count = used.scalar_one() or 0
    if subject_count > 0:
        raise ServiceError(
            "Cannot delete department with associated subjects. "
            f"This department has {subject_count} subject(s). Please delete or reassign them first.",
            status.HTTP_409_CONFLICT,
        )
    result = await db.execute(delete(Department).where(Department.id == department_id))
    await db.commit()
    return bool(result.rowcount)
