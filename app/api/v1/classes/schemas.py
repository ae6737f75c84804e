from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.api.v1.departments.schemas import DepartmentResponse
from app.api.v1.users.schemas import UserResponse
from app.core.enums import ClassStatus


class ClassCreate(BaseModel):
    """invite_code is never taken from the client; it is allocated on create."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    subject_id: int = Field(..., ge=1)
    teacher_id: str = Field(..., min_length=1, max_length=64)
    capacity: int = Field(50, ge=1)
    status: ClassStatus = ClassStatus.ACTIVE
    banner_url: Optional[str] = None
    banner_cld_pub_id: Optional[str] = None
    schedules: List[Dict[str, Any]] = Field(default_factory=list)


class ClassUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    subject_id: Optional[int] = Field(None, ge=1)
    teacher_id: Optional[str] = Field(None, min_length=1, max_length=64)
    capacity: Optional[int] = Field(None, ge=1)
    status: Optional[ClassStatus] = None
    banner_url: Optional[str] = None
    banner_cld_pub_id: Optional[str] = None
    schedules: Optional[List[Dict[str, Any]]] = None


class ClassSubject(BaseModel):
    id: int
    department_id: int
    code: str
    name: str

    class Config:
        from_attributes = True


class ClassResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    subject_id: int
    teacher_id: str
    invite_code: str
    capacity: int
    status: str
    banner_url: Optional[str] = None
    banner_cld_pub_id: Optional[str] = None
    schedules: List[Dict[str, Any]] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    subject: Optional[ClassSubject] = None
    teacher: Optional[UserResponse] = None
    department: Optional[DepartmentResponse] = None


class ClassCreated(BaseModel):
    id: int
    invite_code: str


class InviteCodeResponse(BaseModel):
    code: str
