"""FastAPI dependencies wiring the domain services to the request's database session."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.admission import EnrollmentAdmission
from app.core.config import settings
from app.core.invite_codes import InviteCodeAllocator
from app.db.session import get_db
from app.db.storage import SqlAlchemyStorage


async def get_storage(db: AsyncSession = Depends(get_db)) -> SqlAlchemyStorage:
    return SqlAlchemyStorage(db)


async def get_admission(storage: SqlAlchemyStorage = Depends(get_storage)) -> EnrollmentAdmission:
    return EnrollmentAdmission(storage)


async def get_invite_code_allocator(
    storage: SqlAlchemyStorage = Depends(get_storage),
) -> InviteCodeAllocator:
    return InviteCodeAllocator.from_settings(storage, settings)
