import pytest
from httpx import AsyncClient
from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import ClassStatus, UserRole
from app.core.models import Enrollment
from tests.factories import make_class, make_department, make_enrollment, make_subject, make_user


async def _class_setup(db: AsyncSession, capacity: int = 30, status: ClassStatus = ClassStatus.ACTIVE):
    teacher = await make_user(db, "t1", name="Grace Hopper", role=UserRole.TEACHER)
    dept = await make_department(db)
    subject = await make_subject(db, dept)
    school_class = await make_class(db, subject, teacher, invite_code="abc123", capacity=capacity, status=status)
    return school_class.id


async def _enrollment_count(db: AsyncSession, class_id: int) -> int:
    result = await db.execute(select(func.count(Enrollment.id)).where(Enrollment.class_id == class_id))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_create_enrollment_success(client: AsyncClient, db_session: AsyncSession) -> None:
    class_id = await _class_setup(db_session)
    await make_user(db_session, "s1", name="Ada Lovelace")

    response = await client.post("/api/v1/enrollments", json={"student_id": "s1", "class_id": class_id})
    assert response.status_code == 201
    enrollment_id = response.json()["id"]

    detail = await client.get(f"/api/v1/enrollments/{enrollment_id}")
    assert detail.status_code == 200
    data = detail.json()
    assert data["student_id"] == "s1"
    assert data["class_id"] == class_id
    assert data["student"]["name"] == "Ada Lovelace"
    assert data["class"]["invite_code"] == "abc123"


@pytest.mark.asyncio
async def test_duplicate_enrollment_conflict(client: AsyncClient, db_session: AsyncSession) -> None:
    class_id = await _class_setup(db_session)
    await make_user(db_session, "s1")
    payload = {"student_id": "s1", "class_id": class_id}

    first = await client.post("/api/v1/enrollments", json=payload)
    assert first.status_code == 201

    second = await client.post("/api/v1/enrollments", json=payload)
    assert second.status_code == 409
    assert second.json()["detail"]["kind"] == "DuplicateEnrollment"
    assert await _enrollment_count(db_session, class_id) == 1


@pytest.mark.asyncio
async def test_enrollment_into_full_class(client: AsyncClient, db_session: AsyncSession) -> None:
    class_id = await _class_setup(db_session, capacity=1)
    await make_user(db_session, "s1")
    await make_user(db_session, "s2")

    first = await client.post("/api/v1/enrollments", json={"student_id": "s1", "class_id": class_id})
    assert first.status_code == 201

    response = await client.post("/api/v1/enrollments", json={"student_id": "s2", "class_id": class_id})
    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["kind"] == "CapacityExceeded"
    assert detail["capacity"] == 1
    assert "1" in detail["message"]


@pytest.mark.asyncio
async def test_enrollment_into_inactive_class(client: AsyncClient, db_session: AsyncSession) -> None:
    class_id = await _class_setup(db_session, status=ClassStatus.INACTIVE)
    await make_user(db_session, "s1")

    response = await client.post("/api/v1/enrollments", json={"student_id": "s1", "class_id": class_id})
    assert response.status_code == 400
    assert response.json()["detail"] == {"kind": "ClassNotOpen", "message": "Cannot enroll in inactive class"}


@pytest.mark.asyncio
async def test_enrollment_unknown_class_and_student(client: AsyncClient, db_session: AsyncSession) -> None:
    class_id = await _class_setup(db_session)

    missing_class = await client.post("/api/v1/enrollments", json={"student_id": "ghost", "class_id": 999})
    assert missing_class.status_code == 400
    assert missing_class.json()["detail"]["kind"] == "InvalidClass"

    missing_student = await client.post("/api/v1/enrollments", json={"student_id": "ghost", "class_id": class_id})
    assert missing_student.status_code == 400
    assert missing_student.json()["detail"]["kind"] == "InvalidStudent"


@pytest.mark.asyncio
async def test_enrollment_malformed_body(client: AsyncClient, db_session: AsyncSession) -> None:
    response = await client.post("/api/v1/enrollments", json={"student_id": "s1"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_join_by_invite_code(client: AsyncClient, db_session: AsyncSession) -> None:
    class_id = await _class_setup(db_session)
    await make_user(db_session, "s1")

    response = await client.post("/api/v1/enrollments/join", json={"student_id": "s1", "invite_code": "abc123"})
    assert response.status_code == 201
    assert await _enrollment_count(db_session, class_id) == 1

    unknown = await client.post("/api/v1/enrollments/join", json={"student_id": "s1", "invite_code": "nope00"})
    assert unknown.status_code == 404
    assert unknown.json()["detail"] == "No class found for this invite code"


@pytest.mark.asyncio
async def test_list_enrollments_filters(client: AsyncClient, db_session: AsyncSession) -> None:
    teacher = await make_user(db_session, "t1", role=UserRole.TEACHER)
    dept = await make_department(db_session)
    subject = await make_subject(db_session, dept)
    class_a = await make_class(db_session, subject, teacher, invite_code="aaaaaa", name="A")
    class_b = await make_class(db_session, subject, teacher, invite_code="bbbbbb", name="B")
    s1 = await make_user(db_session, "s1")
    s2 = await make_user(db_session, "s2")
    await make_enrollment(db_session, s1, class_a)
    await make_enrollment(db_session, s2, class_a)
    await make_enrollment(db_session, s1, class_b)

    by_class = await client.get("/api/v1/enrollments", params={"class_id": class_a.id})
    assert by_class.status_code == 200
    body = by_class.json()
    assert body["pagination"]["total"] == 2
    assert {e["student_id"] for e in body["data"]} == {"s1", "s2"}

    by_student = await client.get("/api/v1/enrollments", params={"student_id": "s1", "limit": 1})
    body = by_student.json()
    assert body["pagination"] == {"page": 1, "limit": 1, "total": 2, "total_pages": 2}
    assert len(body["data"]) == 1


@pytest.mark.asyncio
async def test_delete_enrollment(client: AsyncClient, db_session: AsyncSession) -> None:
    class_id = await _class_setup(db_session)
    await make_user(db_session, "s1")
    created = await client.post("/api/v1/enrollments", json={"student_id": "s1", "class_id": class_id})
    enrollment_id = created.json()["id"]

    response = await client.delete(f"/api/v1/enrollments/{enrollment_id}")
    assert response.status_code == 204

    again = await client.delete(f"/api/v1/enrollments/{enrollment_id}")
    assert again.status_code == 404
    missing = await client.get(f"/api/v1/enrollments/{enrollment_id}")
    assert missing.status_code == 404


async def _break_enrollments_table(db: AsyncSession) -> None:
    await db.execute(text("DROP TABLE enrollments"))
    await db.commit()


@pytest.mark.asyncio
async def test_create_enrollment_storage_failure(client: AsyncClient, db_session: AsyncSession) -> None:
    class_id = await _class_setup(db_session)
    await make_user(db_session, "s1")
    await _break_enrollments_table(db_session)

    response = await client.post("/api/v1/enrollments", json={"student_id": "s1", "class_id": class_id})
    assert response.status_code == 503
    assert response.json()["detail"]["kind"] == "StorageUnavailable"


@pytest.mark.asyncio
async def test_list_enrollments_storage_failure(client: AsyncClient, db_session: AsyncSession) -> None:
    """Database errors raised outside the domain services go through the app-level handler."""
    await _break_enrollments_table(db_session)

    response = await client.get("/api/v1/enrollments")
    assert response.status_code == 503
    assert response.json()["detail"] == {
        "kind": "StorageUnavailable",
        "message": "Storage is unavailable, please retry",
    }


@pytest.mark.asyncio
async def test_list_enrollments_ignores_non_numeric_class_filter(client: AsyncClient, db_session: AsyncSession) -> None:
    teacher = await make_user(db_session, "t1", role=UserRole.TEACHER)
    dept = await make_department(db_session)
    subject = await make_subject(db_session, dept)
    class_a = await make_class(db_session, subject, teacher, invite_code="aaaaaa", name="A")
    class_b = await make_class(db_session, subject, teacher, invite_code="bbbbbb", name="B")
    student = await make_user(db_session, "s1")
    await make_enrollment(db_session, student, class_a)
    await make_enrollment(db_session, student, class_b)

    for value in ("abc", "0"):
        response = await client.get("/api/v1/enrollments", params={"class_id": value})
        assert response.status_code == 200
        assert response.json()["pagination"]["total"] == 2

    filtered = await client.get("/api/v1/enrollments", params={"class_id": str(class_b.id)})
    assert [e["class_id"] for e in filtered.json()["data"]] == [class_b.id]
