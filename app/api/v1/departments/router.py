from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ServiceError
from app.core.pagination import PageParams, page_params
from app.core.schemas import PaginatedResponse
from app.db.session import get_db

from .schemas import (
    DepartmentCreate,
    DepartmentCreated,
    DepartmentResponse,
    DepartmentUpdate,
)
from . import service

router = APIRouter(prefix="/api/v1/departments", tags=["departments"])


@router.post("", response_model=DepartmentCreated, status_code=status.HTTP_201_CREATED)
async def create_department(
    payload: DepartmentCreate,
    db: AsyncSession = Depends(get_db),
) -> DepartmentCreated:
    try:
        return await service.create_department(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=PaginatedResponse[DepartmentResponse])
async def list_departments(
    search: Optional[str] = Query(None, description="Case-insensitive match on name or code"),
    params: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
) -> PaginatedResponse[DepartmentResponse]:
    return await service.list_departments(db, params, search=search)


@router.get("/{department_id}", response_model=DepartmentResponse)
async def get_department(
    department_id: int,
    db: AsyncSession = Depends(get_db),
) -> DepartmentResponse:
    dept = await service.get_department(db, department_id)
    if not dept:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Department not found")
    return dept


@router.patch("/{department_id}", response_model=DepartmentResponse)
async def update_department(
    department_id: int,
    payload: DepartmentUpdate,
    db: AsyncSession = Depends(get_db),
) -> DepartmentResponse:
    try:
        dept = await service.update_department(db, department_id, payload)
        if not dept:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Department not found")
        return dept
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{department_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_department(
    department_id: int,
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        deleted = await service.delete_department(db, department_id)
        if not deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Department not found")
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
