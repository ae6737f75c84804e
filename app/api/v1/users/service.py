import logging
from typing import Optional

from fastapi import status
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import ClassStatus, UserRole
from app.core.exceptions import ServiceError
from app.core.models import SchoolClass, User
from app.core.pagination import PageParams, contains_pattern, fetch_page
from app.core.schemas import PaginatedResponse

from .schemas import UserCreate, UserCreated, UserResponse, UserUpdate

logger = logging.getLogger(__name__)


async def _email_owner(db: AsyncSession, email: str) -> Optional[str]:
    result = await db.execute(select(User.id).where(User.email == email))
    return result.scalar_one_or_none()


async def list_users(
    db: AsyncSession,
    params: PageParams,
    search: Optional[str] = None,
    role: Optional[UserRole] = None,
) -> PaginatedResponse[UserResponse]:
    stmt = select(User)
    if search:
        pattern = contains_pattern(search)
        stmt = stmt.where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
    if role is not None:
        stmt = stmt.where(User.role == role.value)
    stmt = stmt.order_by(User.created_at.desc(), User.id.desc())
    rows, meta = await fetch_page(db, stmt, params)
    return PaginatedResponse[UserResponse](
        data=[UserResponse.model_validate(u) for (u,) in rows],
        pagination=meta,
    )


async def get_user(db: AsyncSession, user_id: str) -> Optional[UserResponse]:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    return UserResponse.model_validate(user) if user else None


async def create_user(db: AsyncSession, payload: UserCreate) -> UserCreated:
    email = payload.email.strip().lower()
    if await _email_owner(db, email):
        raise ServiceError("Email already exists", status.HTTP_400_BAD_REQUEST)
    if payload.id:
        existing = await db.execute(select(User.id).where(User.id == payload.id))
        if existing.scalar_one_or_none():
            raise ServiceError("User ID already exists", status.HTTP_400_BAD_REQUEST)
    try:
        user = User(
            name=payload.name.strip(),
            email=email,
            role=payload.role.value,
            image=payload.image,
            image_cld_pub_id=payload.image_cld_pub_id,
        )
        if payload.id:
            user.id = payload.id
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return UserCreated(id=user.id)
    except IntegrityError:
        await db.rollback()
        raise ServiceError("User ID or email already exists", status.HTTP_409_CONFLICT)


async def update_user(db: AsyncSession, user_id: str, payload: UserUpdate) -> Optional[UserResponse]:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        return None
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("email"):
        changes["email"] = changes["email"].strip().lower()
        owner = await _email_owner(db, changes["email"])
        if owner and owner != user_id:
            raise ServiceError("Email already exists", status.HTTP_400_BAD_REQUEST)
    if isinstance(changes.get("role"), UserRole):
        changes["role"] = changes["role"].value
    for field, value in changes.items():
        if value is None and field in ("name", "email", "role"):
            continue
        setattr(user, field, value)
    try:
        await db.commit()
        await db.refresh(user)
        return UserResponse.model_validate(user)
    except IntegrityError:
        await db.rollback()
        raise ServiceError("Email already exists", status.HTTP_400_BAD_REQUEST)


async def delete_user(db: AsyncSession, user_id: str) -> bool:
    """Delete a user unless they are teaching active classes."""
    teaching = await db.execute(
        select(func.count(SchoolClass.id)).where(
            SchoolClass.teacher_id == user_id,
            SchoolClass.status == ClassStatus.ACTIVE.value,
        )
    )
    active_count = teaching.scalar_one() or 0
    if active_count > 0:
        raise ServiceError(
            "Cannot delete user who is teaching active classes. "
            f"This user is teaching {active_count} active class(es). Please reassign them first.",
            status.HTTP_409_CONFLICT,
        )
    try:
        result = await db.execute(delete(User).where(User.id == user_id))
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError(
            "Cannot delete user: they are still referenced by classes",
            status.HTTP_409_CONFLICT,
        )
    if result.rowcount:
        logger.info("Deleted user %s", user_id)
    return bool(result.rowcount)
