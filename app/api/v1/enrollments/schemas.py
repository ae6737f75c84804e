from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.api.v1.users.schemas import UserResponse


class EnrollmentCreate(BaseModel):
    student_id: str = Field(..., min_length=1, max_length=64)
    class_id: int = Field(..., ge=1)


class EnrollmentJoin(BaseModel):
    """Self-service enrollment with the code the teacher shared."""

    student_id: str = Field(..., min_length=1, max_length=64)
    invite_code: str = Field(..., min_length=1, max_length=20)


class EnrollmentClass(BaseModel):
    id: int
    name: str
    invite_code: str
    capacity: int
    status: str

    class Config:
        from_attributes = True


class EnrollmentResponse(BaseModel):
    id: int
    student_id: str
    class_id: int
    created_at: datetime
    student: Optional[UserResponse] = None
    school_class: Optional[EnrollmentClass] = Field(None, serialization_alias="class")


class EnrollmentCreated(BaseModel):
    id: int
