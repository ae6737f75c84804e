"""SQLAlchemy implementation of the classroom storage collaborator."""

import asyncio
import logging
from contextlib import asynccontextmanager, contextmanager
from typing import AsyncIterator, Iterator, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import StorageUnavailable
from app.core.models import Enrollment, SchoolClass, User
from app.core.storage import ClassRecord, EnrollmentRecord, StorageConflict, StorageReferenceMissing, UserRecord

logger = logging.getLogger(__name__)

# Connection loss, timeouts and server-side cancellation; constraint violations are not in here.
_INFRASTRUCTURE_ERRORS = (OperationalError, InterfaceError, asyncio.TimeoutError, OSError)


@contextmanager
def _unavailable_on_failure(operation: str) -> Iterator[None]:
    try:
        yield
    except _INFRASTRUCTURE_ERRORS as e:
        logger.error("Storage operation %s failed: %s", operation, e)
        raise StorageUnavailable() from e


class SqlAlchemyStorage:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        try:
            yield
        except Exception:
            await self.db.rollback()
            raise
        try:
            with _unavailable_on_failure("commit"):
                await self.db.commit()
        except StorageUnavailable:
            await self.db.rollback()
            raise

    async def get_class_by_id(self, class_id: int, for_update: bool = False) -> Optional[ClassRecord]:
        stmt = select(SchoolClass).where(SchoolClass.id == class_id)
        if for_update:
            # Row lock on PostgreSQL. SQLite drops FOR UPDATE; racing writers there can fail with
            # "database is locked", surfaced as StorageUnavailable.
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        with _unavailable_on_failure("get_class_by_id"):
            result = await self.db.execute(stmt)
        obj = result.scalar_one_or_none()
        return ClassRecord.model_validate(obj) if obj else None

    async def count_enrollments(self, class_id: int) -> int:
        with _unavailable_on_failure("count_enrollments"):
            result = await self.db.execute(
                select(func.count(Enrollment.id)).where(Enrollment.class_id == class_id)
            )
        return result.scalar_one() or 0

    async def get_user_by_id(self, user_id: str) -> Optional[UserRecord]:
        with _unavailable_on_failure("get_user_by_id"):
            result = await self.db.execute(select(User).where(User.id == user_id))
        obj = result.scalar_one_or_none()
        return UserRecord.model_validate(obj) if obj else None

    async def find_enrollment(self, student_id: str, class_id: int) -> Optional[EnrollmentRecord]:
        with _unavailable_on_failure("find_enrollment"):
            result = await self.db.execute(
                select(Enrollment).where(
                    Enrollment.student_id == student_id,
                    Enrollment.class_id == class_id,
                )
            )
        obj = result.scalar_one_or_none()
        return EnrollmentRecord.model_validate(obj) if obj else None

    async def insert_enrollment(self, student_id: str, class_id: int) -> int:
        enrollment = Enrollment(student_id=student_id, class_id=class_id)
        self.db.add(enrollment)
        try:
            with _unavailable_on_failure("insert_enrollment"):
                await self.db.flush()
        except IntegrityError as e:
            err_msg = str(e.orig) if getattr(e, "orig", None) else str(e)
            # FK violation: student or class removed between the checks and the insert
            if "foreign key" in err_msg.lower():
                raise StorageReferenceMissing(err_msg) from e
            raise StorageConflict(err_msg) from e
        return enrollment.id

    async def class_with_invite_code_exists(self, code: str) -> bool:
        with _unavailable_on_failure("class_with_invite_code_exists"):
            result = await self.db.execute(
                select(SchoolClass.id).where(SchoolClass.invite_code == code).limit(1)
            )
        return result.scalar_one_or_none() is not None
