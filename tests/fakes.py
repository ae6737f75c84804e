"""In-memory stand-in for the classroom storage collaborator."""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Dict, List, Optional, Set

from app.core.enums import ClassStatus
from app.core.exceptions import StorageUnavailable
from app.core.storage import ClassRecord, EnrollmentRecord, StorageConflict, UserRecord


class InMemoryStorage:
    """
    Dict-backed storage. ``transaction()`` holds one lock for the whole unit
    of work (the equivalent of the class row lock) and restores enrollments on
    error. Every operation yields to the event loop so concurrent admissions
    interleave. ``calls`` records operation names in order; set ``fail_on`` to
    an operation name to make it raise StorageUnavailable.
    """

    def __init__(self) -> None:
        self.classes: Dict[int, ClassRecord] = {}
        self.users: Dict[str, UserRecord] = {}
        self.enrollments: Dict[int, EnrollmentRecord] = {}
        self.taken_codes: Set[str] = set()
        self.calls: List[str] = []
        self.fail_on: Optional[str] = None
        self.commits = 0
        self.rollbacks = 0
        self._next_enrollment_id = 1
        self._lock = asyncio.Lock()

    def add_class(
        self,
        class_id: int,
        capacity: int = 30,
        status: ClassStatus = ClassStatus.ACTIVE,
        invite_code: Optional[str] = None,
    ) -> ClassRecord:
        code = invite_code or f"code{class_id}"
        record = ClassRecord(id=class_id, capacity=capacity, status=status.value, invite_code=code)
        self.classes[class_id] = record
        self.taken_codes.add(code)
        return record

    def add_user(self, user_id: str) -> UserRecord:
        record = UserRecord(id=user_id)
        self.users[user_id] = record
        return record

    def add_enrollment(self, student_id: str, class_id: int) -> EnrollmentRecord:
        record = EnrollmentRecord(
            id=self._next_enrollment_id,
            student_id=student_id,
            class_id=class_id,
            created_at=datetime.utcnow(),
        )
        self.enrollments[record.id] = record
        self._next_enrollment_id += 1
        return record

    async def _op(self, name: str) -> None:
        self.calls.append(name)
        await asyncio.sleep(0)
        if self.fail_on == name:
            raise StorageUnavailable()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        async with self._lock:
            snapshot = dict(self.enrollments)
            try:
                yield
            except Exception:
                self.enrollments = snapshot
                self.rollbacks += 1
                raise
            self.commits += 1

    async def get_class_by_id(self, class_id: int, for_update: bool = False) -> Optional[ClassRecord]:
        await self._op("get_class_by_id")
        return self.classes.get(class_id)

    async def count_enrollments(self, class_id: int) -> int:
        await self._op("count_enrollments")
        return sum(1 for e in self.enrollments.values() if e.class_id == class_id)

    async def get_user_by_id(self, user_id: str) -> Optional[UserRecord]:
        await self._op("get_user_by_id")
        return self.users.get(user_id)

    async def find_enrollment(self, student_id: str, class_id: int) -> Optional[EnrollmentRecord]:
        await self._op("find_enrollment")
        for e in self.enrollments.values():
            if e.student_id == student_id and e.class_id == class_id:
                return e
        return None

    async def insert_enrollment(self, student_id: str, class_id: int) -> int:
        await self._op("insert_enrollment")
        if any(e.student_id == student_id and e.class_id == class_id for e in self.enrollments.values()):
            raise StorageConflict("uq_enrollment_student_class")
        return self.add_enrollment(student_id, class_id).id

    async def class_with_invite_code_exists(self, code: str) -> bool:
        await self._op("class_with_invite_code_exists")
        return code in self.taken_codes
