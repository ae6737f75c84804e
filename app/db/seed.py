"""
Seed a development database with a small school: departments, subjects, a
teacher, students, classes and enrollments. Classes get their invite codes and
enrollments go through admission exactly as they do over the API.

Usage: python -m app.db.seed
"""

import asyncio

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.admission import EnrollmentAdmission
from app.core.config import settings
from app.core.enums import ClassStatus, UserRole
from app.core.exceptions import DomainError
from app.core.invite_codes import InviteCodeAllocator
from app.core.models import Department, SchoolClass, Subject, User
from app.db.schema_check import ensure_tables
from app.db.session import AsyncSessionLocal, engine
from app.db.storage import SqlAlchemyStorage

DEPARTMENTS = [
    ("MATH", "Mathematics", [("MATH101", "Algebra"), ("MATH201", "Calculus")]),
    ("SCI", "Science", [("PHY101", "Physics"), ("CHEM101", "Chemistry")]),
    ("HUM", "Humanities", [("HIST101", "World History")]),
]

STUDENTS = [
    ("student-ada", "Ada Lovelace", "ada@example.com"),
    ("student-alan", "Alan Turing", "alan@example.com"),
    ("student-grace", "Grace Hopper", "grace@example.com"),
    ("student-edsger", "Edsger Dijkstra", "edsger@example.com"),
]


async def _get_or_create_user(db: AsyncSession, user_id: str, name: str, email: str, role: UserRole) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        user = User(id=user_id, name=name, email=email, role=role.value)
        db.add(user)
        await db.flush()
        print(f"Created {role.value} {name}")
    return user


async def seed(db: AsyncSession) -> None:
    storage = SqlAlchemyStorage(db)
    allocator = InviteCodeAllocator.from_settings(storage, settings)
    admission = EnrollmentAdmission(storage)

    teacher = await _get_or_create_user(db, "teacher-knuth", "Donald Knuth", "knuth@example.com", UserRole.TEACHER)
    students = [
        await _get_or_create_user(db, user_id, name, email, UserRole.STUDENT)
        for user_id, name, email in STUDENTS
    ]

    for dept_code, dept_name, subjects in DEPARTMENTS:
        result = await db.execute(select(Department).where(Department.code == dept_code))
        dept = result.scalar_one_or_none()
        if dept is None:
            dept = Department(code=dept_code, name=dept_name)
            db.add(dept)
            await db.flush()
            print(f"Created department {dept_code}")
        for subject_code, subject_name in subjects:
            result = await db.execute(select(Subject).where(Subject.code == subject_code))
            if result.scalar_one_or_none() is None:
                subject = Subject(code=subject_code, name=subject_name, department_id=dept.id)
                db.add(subject)
                await db.flush()
                db.add(
                    SchoolClass(
                        name=f"{subject_name} - Section A",
                        subject_id=subject.id,
                        teacher_id=teacher.id,
                        capacity=3,
                        status=ClassStatus.ACTIVE.value,
                        invite_code=await allocator.allocate_unique(),
                        schedules=[],
                    )
                )
                print(f"Created subject {subject_code} with one class")
    await db.commit()

    # Plain ids: a failed admission rolls back and expires every loaded instance
    student_ids = [s.id for s in students]
    class_ids = (await db.execute(select(SchoolClass.id).order_by(SchoolClass.id))).scalars().all()
    for class_id in class_ids:
        for student_id in student_ids:
            try:
                await admission.admit(student_id, class_id)
            except DomainError as e:
                # Seeding is re-runnable: duplicates and full classes are expected on later runs
                print(f"Skipped {student_id} -> class {class_id}: {e.kind}")

    print("Seed done.")


async def main() -> None:
    await ensure_tables(engine)
    async with AsyncSessionLocal() as db:
        try:
            await seed(db)
        except Exception as e:
            await db.rollback()
            print("Error:", e)
            raise


if __name__ == "__main__":
    asyncio.run(main())
