"""
Storage collaborator used by the enrollment and invite-code domain services.

The services only see this protocol, so they can run against the SQLAlchemy
implementation (``app.db.storage``) or an in-memory fake in tests.
Implementations raise ``StorageUnavailable`` for infrastructure failures,
``StorageConflict`` when a uniqueness constraint rejects a write and
``StorageReferenceMissing`` when a foreign key does.
"""

from datetime import datetime
from typing import AsyncContextManager, Optional, Protocol

from pydantic import BaseModel


class StorageConflict(Exception):
    """A write was rejected by a uniqueness constraint."""


class StorageReferenceMissing(Exception):
    """A write referenced a row that does not exist (foreign key violation)."""


class ClassRecord(BaseModel):
    id: int
    capacity: int
    status: str
    invite_code: str

    class Config:
        from_attributes = True


class UserRecord(BaseModel):
    id: str

    class Config:
        from_attributes = True


class EnrollmentRecord(BaseModel):
    id: int
    student_id: str
    class_id: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ClassroomStorage(Protocol):
    def transaction(self) -> AsyncContextManager[None]:
        """Scope for a unit of work: commit on clean exit, roll back on error."""
        ...

    async def get_class_by_id(self, class_id: int, for_update: bool = False) -> Optional[ClassRecord]:
        ...

    async def count_enrollments(self, class_id: int) -> int:
        ...

    async def get_user_by_id(self, user_id: str) -> Optional[UserRecord]:
        ...

    async def find_enrollment(self, student_id: str, class_id: int) -> Optional[EnrollmentRecord]:
        ...

    async def insert_enrollment(self, student_id: str, class_id: int) -> int:
        ...

    async def class_with_invite_code_exists(self, code: str) -> bool:
        ...
