"""Unit tests for enrollment admission against the in-memory storage."""

import asyncio

import pytest

from app.core.admission import EnrollmentAdmission
from app.core.enums import ClassStatus
from app.core.exceptions import (
    CapacityExceeded,
    ClassNotOpen,
    DuplicateEnrollment,
    InvalidClass,
    InvalidStudent,
    StorageUnavailable,
)
from app.core.storage import StorageConflict, StorageReferenceMissing
from tests.fakes import InMemoryStorage


@pytest.fixture()
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.mark.asyncio
async def test_admit_returns_enrollment_id_and_persists(storage: InMemoryStorage) -> None:
    storage.add_class(7, capacity=30)
    storage.add_user("s1")

    enrollment_id = await EnrollmentAdmission(storage).admit("s1", 7)

    record = await storage.find_enrollment("s1", 7)
    assert record is not None
    assert record.id == enrollment_id
    assert record.student_id == "s1"
    assert record.class_id == 7
    assert storage.commits == 1


@pytest.mark.asyncio
async def test_second_admission_of_same_student_is_duplicate(storage: InMemoryStorage) -> None:
    storage.add_class(7, capacity=30)
    storage.add_user("s1")
    admission = EnrollmentAdmission(storage)

    first = await admission.admit("s1", 7)
    assert isinstance(first, int)

    with pytest.raises(DuplicateEnrollment) as exc_info:
        await admission.admit("s1", 7)
    assert exc_info.value.status_code == 409
    assert len(storage.enrollments) == 1


@pytest.mark.asyncio
async def test_unknown_class_stops_before_other_checks(storage: InMemoryStorage) -> None:
    storage.add_user("s1")

    with pytest.raises(InvalidClass) as exc_info:
        await EnrollmentAdmission(storage).admit("s1", 999)

    assert exc_info.value.message == "Invalid class ID"
    assert storage.calls == ["get_class_by_id"]


@pytest.mark.asyncio
async def test_inactive_class_reported_before_capacity(storage: InMemoryStorage) -> None:
    storage.add_class(3, capacity=1, status=ClassStatus.INACTIVE)
    storage.add_user("s0")
    storage.add_user("s1")
    storage.add_enrollment("s0", 3)

    with pytest.raises(ClassNotOpen) as exc_info:
        await EnrollmentAdmission(storage).admit("s1", 3)

    assert exc_info.value.kind == "ClassNotOpen"
    assert "count_enrollments" not in storage.calls


@pytest.mark.asyncio
async def test_archived_class_is_not_open(storage: InMemoryStorage) -> None:
    storage.add_class(3, status=ClassStatus.ARCHIVED)
    storage.add_user("s1")

    with pytest.raises(ClassNotOpen):
        await EnrollmentAdmission(storage).admit("s1", 3)


@pytest.mark.asyncio
async def test_full_class_reports_capacity(storage: InMemoryStorage) -> None:
    storage.add_class(5, capacity=2)
    for student_id in ("a", "b", "c"):
        storage.add_user(student_id)
    storage.add_enrollment("a", 5)
    storage.add_enrollment("b", 5)

    with pytest.raises(CapacityExceeded) as exc_info:
        await EnrollmentAdmission(storage).admit("c", 5)

    err = exc_info.value
    assert err.capacity == 2
    assert "2" in err.message
    assert err.to_detail() == {"kind": "CapacityExceeded", "message": err.message, "capacity": 2}
    assert "get_user_by_id" not in storage.calls


@pytest.mark.asyncio
async def test_unknown_student_checked_after_capacity(storage: InMemoryStorage) -> None:
    storage.add_class(5, capacity=2)

    with pytest.raises(InvalidStudent):
        await EnrollmentAdmission(storage).admit("ghost", 5)

    assert storage.calls == ["get_class_by_id", "count_enrollments", "get_user_by_id"]
    assert storage.enrollments == {}


@pytest.mark.asyncio
async def test_storage_failure_propagates_and_rolls_back(storage: InMemoryStorage) -> None:
    storage.add_class(7)
    storage.add_user("s1")
    storage.fail_on = "find_enrollment"

    with pytest.raises(StorageUnavailable) as exc_info:
        await EnrollmentAdmission(storage).admit("s1", 7)

    assert exc_info.value.status_code == 503
    assert "insert_enrollment" not in storage.calls
    assert storage.rollbacks == 1
    assert storage.commits == 0


@pytest.mark.asyncio
async def test_conflict_at_insert_is_duplicate(storage: InMemoryStorage) -> None:
    """A concurrent writer inserted the same pair after the duplicate check."""
    storage.add_class(7)
    storage.add_user("s1")

    async def conflicting_insert(student_id: str, class_id: int) -> int:
        raise StorageConflict("uq_enrollment_student_class")

    storage.insert_enrollment = conflicting_insert

    with pytest.raises(DuplicateEnrollment):
        await EnrollmentAdmission(storage).admit("s1", 7)
    assert storage.rollbacks == 1


@pytest.mark.asyncio
async def test_concurrent_admissions_for_last_seat(storage: InMemoryStorage) -> None:
    storage.add_class(9, capacity=3)
    storage.add_user("early1")
    storage.add_user("early2")
    storage.add_enrollment("early1", 9)
    storage.add_enrollment("early2", 9)
    contenders = [f"late{i}" for i in range(5)]
    for student_id in contenders:
        storage.add_user(student_id)
    admission = EnrollmentAdmission(storage)

    results = await asyncio.gather(
        *(admission.admit(student_id, 9) for student_id in contenders),
        return_exceptions=True,
    )

    admitted = [r for r in results if isinstance(r, int)]
    rejected = [r for r in results if isinstance(r, CapacityExceeded)]
    assert len(admitted) == 1
    assert len(rejected) == len(contenders) - 1
    assert await storage.count_enrollments(9) == 3


@pytest.mark.asyncio
async def test_missing_reference_at_insert_is_invalid_student(storage: InMemoryStorage) -> None:
    """The student row was deleted after the existence check."""
    storage.add_class(7)
    storage.add_user("s1")

    async def vanished_student(student_id: str, class_id: int) -> int:
        raise StorageReferenceMissing("FOREIGN KEY constraint failed")

    storage.insert_enrollment = vanished_student

    with pytest.raises(InvalidStudent):
        await EnrollmentAdmission(storage).admit("s1", 7)
    assert storage.enrollments == {}
    assert storage.rollbacks == 1
