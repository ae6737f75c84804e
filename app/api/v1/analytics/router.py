from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.session import get_db

from .schemas import (
    ActivityItem,
    CapacityStatusResponse,
    DepartmentClassCount,
    EnrollmentTrendPoint,
    OverviewResponse,
    RoleCount,
)
from . import service

router = APIRouter(prefix="/api/v1/analytics", tags=["analytics"])


@router.get("/overview", response_model=OverviewResponse)
async def overview(db: AsyncSession = Depends(get_db)) -> OverviewResponse:
    """Totals for the dashboard cards."""
    return await service.get_overview(db)


@router.get("/enrollment-trends", response_model=List[EnrollmentTrendPoint])
async def enrollment_trends(db: AsyncSession = Depends(get_db)) -> List[EnrollmentTrendPoint]:
    return await service.get_enrollment_trends(db, days=settings.enrollment_trends_days)


@router.get("/classes-by-department", response_model=List[DepartmentClassCount])
async def classes_by_department(db: AsyncSession = Depends(get_db)) -> List[DepartmentClassCount]:
    return await service.get_classes_by_department(db)


@router.get("/capacity-status", response_model=CapacityStatusResponse)
async def capacity_status(db: AsyncSession = Depends(get_db)) -> CapacityStatusResponse:
    return await service.get_capacity_status(db)


@router.get("/user-distribution", response_model=List[RoleCount])
async def user_distribution(db: AsyncSession = Depends(get_db)) -> List[RoleCount]:
    return await service.get_user_distribution(db)


@router.get("/recent-activity", response_model=List[ActivityItem])
async def recent_activity(db: AsyncSession = Depends(get_db)) -> List[ActivityItem]:
    return await service.get_recent_activity(db, limit=settings.recent_activity_limit)
