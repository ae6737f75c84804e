from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_invite_code_allocator
from app.core.exceptions import DomainError, ServiceError
from app.core.invite_codes import InviteCodeAllocator
from app.core.pagination import PageParams, page_params
from app.core.schemas import PaginatedResponse
from app.db.session import get_db

from .schemas import ClassCreate, ClassCreated, ClassResponse, ClassUpdate, InviteCodeResponse
from . import service

router = APIRouter(prefix="/api/v1/classes", tags=["classes"])


@router.post("", response_model=ClassCreated, status_code=status.HTTP_201_CREATED)
async def create_class(
    payload: ClassCreate,
    db: AsyncSession = Depends(get_db),
    allocator: InviteCodeAllocator = Depends(get_invite_code_allocator),
) -> ClassCreated:
    try:
        return await service.create_class(db, allocator, payload)
    except DomainError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=PaginatedResponse[ClassResponse])
async def list_classes(
    search: Optional[str] = Query(None, description="Case-insensitive match on class name or invite code"),
    subject: Optional[str] = Query(None, description="Case-insensitive match on subject name"),
    teacher: Optional[str] = Query(None, description="Case-insensitive match on teacher name"),
    params: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
) -> PaginatedResponse[ClassResponse]:
    return await service.list_classes(db, params, search=search, subject=subject, teacher=teacher)


@router.get("/invite-code", response_model=InviteCodeResponse)
async def allocate_invite_code(
    allocator: InviteCodeAllocator = Depends(get_invite_code_allocator),
) -> InviteCodeResponse:
    """A code no class currently holds. Not reserved: creating a class allocates its own."""
    try:
        return InviteCodeResponse(code=await allocator.allocate_unique())
    except DomainError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/{class_id}", response_model=ClassResponse)
async def get_class(
    class_id: int,
    db: AsyncSession = Depends(get_db),
) -> ClassResponse:
    obj = await service.get_class(db, class_id)
    if not obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    return obj


@router.patch("/{class_id}", response_model=ClassResponse)
async def update_class(
    class_id: int,
    payload: ClassUpdate,
    db: AsyncSession = Depends(get_db),
) -> ClassResponse:
    try:
        obj = await service.update_class(db, class_id, payload)
        if not obj:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
        return obj
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{class_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_class(
    class_id: int,
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        deleted = await service.delete_class(db, class_id)
        if not deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
