"""
Enrollment admission: decide whether a student may join a class and, if so,
record the enrollment.

Checks run in a fixed order and stop at the first failure, so a request that
is wrong on several counts always reports the same error:

1. the class exists                       -> InvalidClass
2. the class is active                    -> ClassNotOpen
3. enrollments < capacity                 -> CapacityExceeded
4. the student exists                     -> InvalidStudent
5. no enrollment for (student, class) yet -> DuplicateEnrollment

All checks and the insert run in one storage transaction that locks the class
row (on PostgreSQL), so two admissions racing for the last seat cannot both
succeed.
"""

import logging

from app.core.enums import ClassStatus
from app.core.exceptions import (
    CapacityExceeded,
    ClassNotOpen,
    DuplicateEnrollment,
    InvalidClass,
    InvalidStudent,
)
from app.core.storage import ClassroomStorage, StorageConflict, StorageReferenceMissing

logger = logging.getLogger(__name__)


class EnrollmentAdmission:
    def __init__(self, storage: ClassroomStorage) -> None:
        self.storage = storage

    async def admit(self, student_id: str, class_id: int) -> int:
        """Admit ``student_id`` to ``class_id`` and return the new enrollment id."""
        async with self.storage.transaction():
            school_class = await self.storage.get_class_by_id(class_id, for_update=True)
            if school_class is None:
                raise InvalidClass(class_id)

            if school_class.status != ClassStatus.ACTIVE.value:
                raise ClassNotOpen(class_id, school_class.status)

            enrolled = await self.storage.count_enrollments(class_id)
            if enrolled >= school_class.capacity:
                raise CapacityExceeded(class_id, school_class.capacity)

            student = await self.storage.get_user_by_id(student_id)
            if student is None:
                raise InvalidStudent(student_id)

            existing = await self.storage.find_enrollment(student_id, class_id)
            if existing is not None:
                raise DuplicateEnrollment(student_id, class_id)

            try:
                enrollment_id = await self.storage.insert_enrollment(student_id, class_id)
            except StorageConflict:
                raise DuplicateEnrollment(student_id, class_id)
            except StorageReferenceMissing:
                # The class row is locked until commit, so the row that vanished is the student
                raise InvalidStudent(student_id)

        logger.info("Admitted student %s to class %s (enrollment %s)", student_id, class_id, enrollment_id)
        return enrollment_id
