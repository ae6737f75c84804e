from app.core.models.user import User
from app.core.models.department import Department
from app.core.models.subject import Subject
from app.core.models.class_model import SchoolClass
from app.core.models.enrollment import Enrollment

__all__ = [
    "Department",
    "Enrollment",
    "SchoolClass",
    "Subject",
    "User",
]
