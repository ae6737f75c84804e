from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.api.v1.departments.schemas import DepartmentResponse


class SubjectCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    department_id: int = Field(..., ge=1)
    description: Optional[str] = None


class SubjectUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    department_id: Optional[int] = Field(None, ge=1)
    description: Optional[str] = None


class SubjectResponse(BaseModel):
    id: int
    department_id: int
    code: str
    name: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    department: Optional[DepartmentResponse] = None


class SubjectCreated(BaseModel):
    id: int
