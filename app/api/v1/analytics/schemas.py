from datetime import date, datetime
from typing import List, Union

from pydantic import BaseModel, Field


class OverviewResponse(BaseModel):
    total_users: int
    total_classes: int
    active_classes: int
    total_departments: int
    total_enrollments: int


class EnrollmentTrendPoint(BaseModel):
    date: date
    count: int


class DepartmentClassCount(BaseModel):
    department_id: int
    department_name: str
    class_count: int


class ClassCapacity(BaseModel):
    class_id: int
    class_name: str
    capacity: int
    enrollment_count: int


class CapacityCategories(BaseModel):
    """Class counts by utilization: available < 70% <= near_full < 90% <= almost_full < 100% <= full."""

    available: int = 0
    near_full: int = 0
    almost_full: int = 0
    full: int = 0


class CapacityStatusResponse(BaseModel):
    categories: CapacityCategories
    details: List[ClassCapacity] = Field(default_factory=list)


class RoleCount(BaseModel):
    role: str
    count: int


class ActivityItem(BaseModel):
    type: str = Field(..., description="enrollment, class or user")
    id: Union[int, str]
    description: str
    created_at: datetime
