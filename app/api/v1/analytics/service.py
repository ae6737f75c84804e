"""Read-only aggregates for the dashboard."""

from datetime import datetime, timedelta
from typing import Iterable, List

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from app.core.enums import ClassStatus
from app.core.models import Department, Enrollment, SchoolClass, Subject, User

from .schemas import (
    ActivityItem,
    CapacityCategories,
    CapacityStatusResponse,
    ClassCapacity,
    DepartmentClassCount,
    EnrollmentTrendPoint,
    OverviewResponse,
    RoleCount,
)

FULL_THRESHOLD = 100
ALMOST_FULL_THRESHOLD = 90
NEAR_FULL_THRESHOLD = 70


async def _count(db: AsyncSession, stmt) -> int:
    result = await db.execute(stmt)
    return result.scalar_one() or 0


async def get_overview(db: AsyncSession) -> OverviewResponse:
    return OverviewResponse(
        total_users=await _count(db, select(func.count(User.id))),
        total_classes=await _count(db, select(func.count(SchoolClass.id))),
        active_classes=await _count(
            db,
            select(func.count(SchoolClass.id)).where(SchoolClass.status == ClassStatus.ACTIVE.value),
        ),
        total_departments=await _count(db, select(func.count(Department.id))),
        total_enrollments=await _count(db, select(func.count(Enrollment.id))),
    )


async def get_enrollment_trends(db: AsyncSession, days: int = 30) -> List[EnrollmentTrendPoint]:
    """Enrollments per calendar day over the last ``days`` days, oldest first. Days with none are omitted."""
    since = datetime.utcnow() - timedelta(days=days)
    day = func.date(Enrollment.created_at)
    result = await db.execute(
        select(day.label("day"), func.count(Enrollment.id).label("cnt"))
        .where(Enrollment.created_at >= since)
        .group_by(day)
        .order_by(day)
    )
    return [EnrollmentTrendPoint(date=row.day, count=row.cnt) for row in result.all()]


async def get_classes_by_department(db: AsyncSession) -> List[DepartmentClassCount]:
    class_count = func.count(SchoolClass.id)
    result = await db.execute(
        select(Department.id, Department.name, class_count.label("cnt"))
        .outerjoin(Subject, Subject.department_id == Department.id)
        .outerjoin(SchoolClass, SchoolClass.subject_id == Subject.id)
        .group_by(Department.id, Department.name)
        .order_by(class_count.desc(), Department.name)
    )
    return [
        DepartmentClassCount(department_id=row.id, department_name=row.name, class_count=row.cnt)
        for row in result.all()
    ]


def categorize_capacity(details: Iterable[ClassCapacity]) -> CapacityCategories:
    categories = CapacityCategories()
    for item in details:
        utilization = item.enrollment_count * 100 / item.capacity
        if utilization >= FULL_THRESHOLD:
            categories.full += 1
        elif utilization >= ALMOST_FULL_THRESHOLD:
            categories.almost_full += 1
        elif utilization >= NEAR_FULL_THRESHOLD:
            categories.near_full += 1
        else:
            categories.available += 1
    return categories


async def get_capacity_status(db: AsyncSession) -> CapacityStatusResponse:
    result = await db.execute(
        select(
            SchoolClass.id,
            SchoolClass.name,
            SchoolClass.capacity,
            func.count(Enrollment.id).label("cnt"),
        )
        .outerjoin(Enrollment, Enrollment.class_id == SchoolClass.id)
        .group_by(SchoolClass.id, SchoolClass.name, SchoolClass.capacity)
        .order_by(SchoolClass.id)
    )
    details = [
        ClassCapacity(class_id=row.id, class_name=row.name, capacity=row.capacity, enrollment_count=row.cnt)
        for row in result.all()
    ]
    return CapacityStatusResponse(categories=categorize_capacity(details), details=details)


async def get_user_distribution(db: AsyncSession) -> List[RoleCount]:
    result = await db.execute(
        select(User.role, func.count(User.id).label("cnt")).group_by(User.role).order_by(User.role)
    )
    return [RoleCount(role=row.role, count=row.cnt) for row in result.all()]


async def get_recent_activity(db: AsyncSession, limit: int = 10) -> List[ActivityItem]:
    """Latest enrollments, classes and users merged newest first, at most ``limit`` items in total."""
    student = aliased(User)
    teacher = aliased(User)

    enrollments = await db.execute(
        select(Enrollment.id, Enrollment.created_at, student.name, SchoolClass.name)
        .outerjoin(student, Enrollment.student_id == student.id)
        .outerjoin(SchoolClass, Enrollment.class_id == SchoolClass.id)
        .order_by(Enrollment.created_at.desc())
        .limit(limit)
    )
    classes = await db.execute(
        select(SchoolClass.id, SchoolClass.created_at, SchoolClass.name, teacher.name)
        .outerjoin(teacher, SchoolClass.teacher_id == teacher.id)
        .order_by(SchoolClass.created_at.desc())
        .limit(limit)
    )
    users = await db.execute(
        select(User.id, User.created_at, User.name, User.role)
        .order_by(User.created_at.desc())
        .limit(limit)
    )

    activities: List[ActivityItem] = []
    for id_, created_at, student_name, class_name in enrollments.all():
        activities.append(
            ActivityItem(
                type="enrollment",
                id=id_,
                description=f"{student_name} enrolled in {class_name}",
                created_at=created_at,
            )
        )
    for id_, created_at, name, teacher_name in classes.all():
        activities.append(
            ActivityItem(
                type="class",
                id=id_,
                description=f'New class "{name}" created by {teacher_name}',
                created_at=created_at,
            )
        )
    for id_, created_at, name, role in users.all():
        activities.append(
            ActivityItem(
                type="user",
                id=id_,
                description=f'New {role} "{name}" registered',
                created_at=created_at,
            )
        )
    activities.sort(key=lambda a: a.created_at, reverse=True)
    return activities[:limit]
